import logging
from typing import List, Tuple

from buzzer.errors import ErrorCode, GameError
from buzzer.models import BuzzerSound, Player, Session
from buzzer.utils.validation import (
    is_valid_join_code,
    is_valid_nickname,
    is_valid_password,
    normalize_join_code,
    sanitize_nickname,
)

from .base import SessionService

logger = logging.getLogger(__name__)


class Roster(SessionService):
    """Player membership: join, rejoin, disconnect and buzzer sound."""

    def _check_can_join(self, session: Session, nickname: str, password: str) -> None:
        if not session.is_active:
            raise GameError(ErrorCode.SESSION_INACTIVE, session.join_code)
        if not session.has_space_for_player(self.settings.max_players):
            raise GameError(ErrorCode.SESSION_FULL, session.join_code)
        if not is_valid_nickname(nickname):
            raise GameError(ErrorCode.INVALID_NICKNAME, repr(nickname))
        if session.is_nickname_taken(nickname):
            raise GameError(ErrorCode.NICKNAME_TAKEN, nickname)
        if not is_valid_password(password):
            raise GameError(ErrorCode.INVALID_PASSWORD)

    def join(self, join_code: str, nickname: str, password: str, sid: str) -> Tuple[Player, Session]:
        join_code = normalize_join_code(join_code)
        if not is_valid_join_code(join_code):
            raise GameError(ErrorCode.INVALID_JOIN_CODE, join_code)
        session = self._require_session(join_code)
        nickname = sanitize_nickname(nickname)

        with session.lock:
            self._check_can_join(session, nickname, password)

        # Hashing is slow; keep it outside the lock and re-check afterwards.
        password_hash = self.hasher.hash(password)

        with session.lock:
            self._check_can_join(session, nickname, password)
            player = Player.create(join_code, nickname, password_hash, sid)
            session.add_player(player)
            self.store.bind_connection(sid, join_code, player.player_id)
            self.store.update_activity(join_code)
            self.gateway.join_room(sid, join_code)
            logger.info(f"[player-join] session={join_code} player={nickname} sid={sid}")
            self._broadcast(session, 'player:joined', {'player': player.to_dict()}, exclude_sid=sid)
            return player, session

    def rejoin(self, join_code: str, nickname: str, password: str, sid: str) -> Tuple[Player, Session]:
        join_code = normalize_join_code(join_code)
        if not is_valid_join_code(join_code):
            raise GameError(ErrorCode.INVALID_JOIN_CODE, join_code)
        nickname = sanitize_nickname(nickname)

        with self._active_session(join_code) as session:
            candidate = session.find_player_by_nickname(nickname)
            password_hash = candidate.password_hash if candidate else None

        # Same answer whether the nickname or the password was wrong.
        if candidate is None or not self.hasher.verify(password, password_hash):
            raise GameError(ErrorCode.AUTHENTICATION_FAILED, f"session={join_code} nickname={nickname!r}")

        with self._active_session(join_code) as session:
            player = session.players.get(candidate.player_id)
            if player is None:
                raise GameError(ErrorCode.AUTHENTICATION_FAILED, "player vanished during rejoin")
            player.reconnect(sid)
            self.store.bind_connection(sid, join_code, player.player_id)
            self.store.update_activity(join_code)
            self.gateway.join_room(sid, join_code)
            logger.info(f"[player-rejoin] session={join_code} player={player.nickname} sid={sid}")
            self._broadcast(session, 'player:reconnected', {'player': player.to_dict()}, exclude_sid=sid)
            return player, session

    def disconnect(self, sid: str) -> List[Player]:
        """Mark whichever players were bound to ``sid`` as disconnected."""
        dropped = []
        for join_code, player_id in self.store.release_connection(sid):
            session = self.store.get_session(join_code)
            if session is None:
                continue
            with session.lock:
                # Ended sessions are frozen until the sweep removes them.
                if not session.is_active:
                    continue
                player = session.players.get(player_id)
                if player is None or player.connection_id != sid:
                    continue
                player.disconnect()
                logger.info(f"[player-disconnect] session={join_code} player={player.nickname}")
                self._broadcast(session, 'player:disconnected', {
                    'playerId': player.player_id,
                    'playerName': player.nickname,
                }, exclude_sid=sid)
                dropped.append(player)
        return dropped

    def change_buzzer_sound(self, join_code: str, player_id: str, buzzer_sound) -> Player:
        with self._active_session(join_code) as session:
            player = session.players.get(player_id)
            if player is None:
                raise GameError(ErrorCode.PLAYER_NOT_FOUND, player_id)
            sound = BuzzerSound.parse(buzzer_sound)
            if sound is None:
                raise GameError(ErrorCode.INVALID_INPUT, f"buzzerSound={buzzer_sound!r}")
            player.buzzer_sound = sound
            self.store.update_activity(join_code)
            logger.info(f"[buzzer-sound] session={join_code} player={player.nickname} sound={sound.value}")
            self._broadcast(session, 'player:buzzerSoundChanged', {
                'playerId': player.player_id,
                'newSound': sound.value,
            }, exclude_sid=player.connection_id)
            return player
