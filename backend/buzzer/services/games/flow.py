"""Question loop for a session: waiting -> active -> scoring -> waiting, and game end.

Every operation checks its guards in a fixed order (session exists, session
active, game state, operation guard, payload) and raises on the first one that
fails, before touching any state. Work happens under the session lock, so two
buzzes for the same session are always appended one after the other and the
first append is the first buzz.
"""

import logging

from buzzer.errors import ErrorCode, GameError
from buzzer.models import BuzzPress, GameState, LeaderboardData, Player
from buzzer.utils.validation import is_valid_score_points

from .base import SessionService
from .leaderboard import calculate_leaderboard

logger = logging.getLogger(__name__)


class GameFlow(SessionService):

    def start_question(self, join_code: str) -> int:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.WAITING:
                raise GameError(ErrorCode.INVALID_STATE_TRANSITION, f"start_question from {session.game_state.value}")
            question = session.begin_question()
            self.store.update_activity(join_code)
            number = question.question_number
            logger.info(f"[question-start] session={join_code} question={number}")
            self._broadcast(session, 'game:questionStarted', {'questionNumber': number})
            self._state_changed(session, number)
            return number

    def press_buzzer(self, join_code: str, player_id: str) -> BuzzPress:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.ACTIVE:
                raise GameError(ErrorCode.BUZZER_DISABLED, f"state={session.game_state.value}")
            player = session.players.get(player_id)
            if player is None:
                raise GameError(ErrorCode.PLAYER_NOT_FOUND, player_id)
            if not player.is_connected:
                raise GameError(ErrorCode.PLAYER_NOT_CONNECTED, player_id)
            question = session.current_question
            if question is None:
                raise GameError(ErrorCode.INVALID_STATE_TRANSITION, "active without a question")
            if question.has_buzzed(player_id):
                raise GameError(ErrorCode.ALREADY_BUZZED, player_id)

            press = question.add_press(player.player_id, player.nickname)
            player.last_buzz_timestamp = press.timestamp
            self.store.update_activity(join_code)
            logger.info(
                f"[buzz] session={join_code} question={question.question_number} "
                f"player={player.nickname} first={press.is_first}"
            )

            self._broadcast(session, 'buzzer:pressed', press.to_dict())
            if press.is_first:
                self._broadcast(session, 'buzzer:first', {
                    'playerId': press.player_id,
                    'playerName': press.player_name,
                    'timestamp': press.timestamp,
                })
            return press

    def move_to_scoring(self, join_code: str) -> int:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.ACTIVE or session.current_question is None:
                raise GameError(ErrorCode.INVALID_STATE_TRANSITION, f"move_to_scoring from {session.game_state.value}")
            question = session.current_question
            if not question.buzzer_presses:
                raise GameError(ErrorCode.NO_BUZZER_PRESSES, f"question={question.question_number}")

            session.open_scoring()
            self.store.update_activity(join_code)
            number = question.question_number
            logger.info(f"[scoring] session={join_code} question={number} presses={len(question.buzzer_presses)}")
            self._broadcast(session, 'game:scoringStarted', {'questionNumber': number})
            self._state_changed(session, number)
            return number

    def assign_points(self, join_code: str, player_id: str, points) -> Player:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.SCORING:
                raise GameError(ErrorCode.INVALID_STATE_TRANSITION, f"assign_points in {session.game_state.value}")
            player = session.players.get(player_id)
            if player is None:
                raise GameError(ErrorCode.PLAYER_NOT_FOUND, player_id)
            if not is_valid_score_points(points, self.settings.score_delta_limit):
                raise GameError(ErrorCode.INVALID_INPUT, f"points={points!r}")

            old_score = player.score
            new_score = player.add_points(points)
            self.store.update_activity(join_code)
            logger.info(f"[score] session={join_code} player={player.nickname} {old_score} -> {new_score}")
            self._broadcast(session, 'player:scoreUpdated', {
                'playerId': player.player_id,
                'newScore': new_score,
                'pointsAdded': points,
            })
            return player

    def skip_question(self, join_code: str) -> int:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.ACTIVE or session.current_question is None:
                raise GameError(ErrorCode.INVALID_STATE_TRANSITION, f"skip_question from {session.game_state.value}")
            number = session.clear_question()
            self.store.update_activity(join_code)
            logger.info(f"[question-skip] session={join_code} question={number}")
            self._broadcast(session, 'game:questionSkipped', {'questionNumber': number})
            self._state_changed(session, 0)
            return number

    def end_question(self, join_code: str) -> int:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.SCORING:
                raise GameError(ErrorCode.INVALID_STATE_TRANSITION, f"end_question from {session.game_state.value}")
            number = session.clear_question()
            self.store.update_activity(join_code)
            logger.info(f"[question-end] session={join_code} question={number}")
            self._broadcast(session, 'game:questionEnded', {'questionNumber': number})
            self._state_changed(session, 0)
            return number

    def end_game(self, join_code: str) -> LeaderboardData:
        with self._active_session(join_code) as session:
            if session.game_state is GameState.ENDED:
                raise GameError(ErrorCode.GAME_ALREADY_ENDED, join_code)
            leaderboard = calculate_leaderboard(session.players.values(), session.join_code)
            session.finish_game(leaderboard)
            self.store.update_activity(join_code)
            logger.info(f"[game-end] session={join_code} players={leaderboard.total_players}")
            self._broadcast(session, 'game:ended', {
                'joinCode': session.join_code,
                'leaderboard': leaderboard.to_dict(),
                'timestamp': leaderboard.timestamp,
            })
            return leaderboard

    def start_new_game(self, join_code: str) -> None:
        with self._active_session(join_code) as session:
            if session.game_state is not GameState.ENDED:
                raise GameError(ErrorCode.CANNOT_START_NEW_GAME, f"state={session.game_state.value}")
            session.reset_for_new_game()
            self.store.update_activity(join_code)
            logger.info(f"[game-new] session={join_code} players={len(session.players)}")
            self._broadcast(session, 'game:newGameStarted', {
                'joinCode': session.join_code,
                'session': session.to_dict(),
            })
            self._state_changed(session, 0)
