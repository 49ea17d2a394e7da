from functools import wraps
from typing import Any, Dict

from flask import current_app, request

from buzzer import socketio
from buzzer.errors import ErrorCode, GameError
from buzzer.gateway import NAMESPACE
from buzzer.services import BuzzerServices


def _services() -> BuzzerServices:
    return current_app.extensions['buzzer']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _required(payload: Dict[str, Any], name: str, kind=str):
    value = payload.get(name)
    if value is None:
        raise GameError(ErrorCode.MISSING_REQUIRED_FIELD, name)
    if not isinstance(value, kind):
        raise GameError(ErrorCode.INVALID_INPUT, f"{name} has type {type(value).__name__}")
    return value


def acknowledged(handler):
    """Turn a handler's result or GameError into the Socket.IO acknowledgement."""

    @wraps(handler)
    def wrapper(data=None):
        payload = data if isinstance(data, dict) else {}
        try:
            result = handler(payload)
        except GameError as exc:
            current_app.logger.info(f"[rejected] event={handler.__name__} code={exc.code.value} detail={exc.detail}")
            return exc.to_ack()
        except Exception:
            current_app.logger.exception(f"[internal-error] event={handler.__name__} sid={_get_sid()}")
            return GameError(ErrorCode.INTERNAL_ERROR).to_ack()
        ack = {'success': True}
        ack.update(result or {})
        return ack

    return wrapper


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
    _services().roster.disconnect(sid)


# ---- game master ----

@acknowledged
def handle_create_session(payload):
    password = _required(payload, 'gmPassword')
    session = _services().sessions.create_session(password, _get_sid())
    return {'joinCode': session.join_code, 'session': session.to_dict()}


@acknowledged
def handle_get_active_sessions(payload):
    password = _required(payload, 'gmPassword')
    sessions = _services().sessions.get_active_sessions(password)
    return {'sessions': sessions, 'totalCount': len(sessions)}


@acknowledged
def handle_reconnect_to_session(payload):
    join_code = _required(payload, 'joinCode')
    password = _required(payload, 'gmPassword')
    session = _services().sessions.reconnect_to_session(join_code, password, _get_sid())
    return {'session': session.to_dict()}


@acknowledged
def handle_end_session(payload):
    _services().sessions.end_session(_required(payload, 'joinCode'), _get_sid())


@acknowledged
def handle_close_session(payload):
    _services().sessions.close_session(_required(payload, 'joinCode'), _get_sid())


@acknowledged
def handle_start_question(payload):
    number = _services().game.start_question(_required(payload, 'joinCode'))
    return {'questionNumber': number}


@acknowledged
def handle_move_to_scoring(payload):
    number = _services().game.move_to_scoring(_required(payload, 'joinCode'))
    return {'questionNumber': number}


@acknowledged
def handle_skip_question(payload):
    number = _services().game.skip_question(_required(payload, 'joinCode'))
    return {'questionNumber': number}


@acknowledged
def handle_end_question(payload):
    number = _services().game.end_question(_required(payload, 'joinCode'))
    return {'questionNumber': number}


@acknowledged
def handle_assign_points(payload):
    join_code = _required(payload, 'joinCode')
    player_id = _required(payload, 'playerId')
    if payload.get('points') is None:
        raise GameError(ErrorCode.MISSING_REQUIRED_FIELD, 'points')
    player = _services().game.assign_points(join_code, player_id, payload['points'])
    return {'newScore': player.score}


@acknowledged
def handle_end_game(payload):
    leaderboard = _services().game.end_game(_required(payload, 'joinCode'))
    return {'leaderboard': leaderboard.to_dict()}


@acknowledged
def handle_start_new_game(payload):
    _services().game.start_new_game(_required(payload, 'joinCode'))


# ---- players ----

@acknowledged
def handle_player_join(payload):
    player, session = _services().roster.join(
        _required(payload, 'joinCode'),
        _required(payload, 'nickname'),
        _required(payload, 'password'),
        _get_sid(),
    )
    return {'player': player.to_dict(), 'session': session.to_dict()}


@acknowledged
def handle_player_rejoin(payload):
    player, session = _services().roster.rejoin(
        _required(payload, 'joinCode'),
        _required(payload, 'nickname'),
        _required(payload, 'password'),
        _get_sid(),
    )
    return {'player': player.to_dict(), 'session': session.to_dict()}


@acknowledged
def handle_press_buzzer(payload):
    press = _services().game.press_buzzer(_required(payload, 'joinCode'), _required(payload, 'playerId'))
    return {'timestamp': press.timestamp, 'isFirst': press.is_first}


@acknowledged
def handle_change_buzzer_sound(payload):
    _services().roster.change_buzzer_sound(
        _required(payload, 'joinCode'),
        _required(payload, 'playerId'),
        _required(payload, 'buzzerSound'),
    )


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'gm:createSession': handle_create_session,
    'gm:getActiveSessions': handle_get_active_sessions,
    'gm:reconnectToSession': handle_reconnect_to_session,
    'gm:endSession': handle_end_session,
    'gm:closeSession': handle_close_session,
    'gm:startQuestion': handle_start_question,
    'gm:moveToScoring': handle_move_to_scoring,
    'gm:skipQuestion': handle_skip_question,
    'gm:endQuestion': handle_end_question,
    'gm:assignPoints': handle_assign_points,
    'gm:endGame': handle_end_game,
    'gm:startNewGame': handle_start_new_game,
    'player:join': handle_player_join,
    'player:rejoin': handle_player_rejoin,
    'player:pressBuzzer': handle_press_buzzer,
    'player:changeBuzzerSound': handle_change_buzzer_sound,
}


def register_socketio_handlers(namespace: str = NAMESPACE) -> None:
    """Register every Socket.IO event handler on ``namespace``."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
