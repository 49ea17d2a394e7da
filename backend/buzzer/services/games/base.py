from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from buzzer.errors import ErrorCode, GameError
from buzzer.models import Session
from buzzer.session_store import SessionStore
from buzzer.utils.join_codes import DEFAULT_MAX_ATTEMPTS
from buzzer.utils.passwords import PasswordHasher
from buzzer.utils.validation import SCORE_DELTA_LIMIT


@dataclass(frozen=True)
class GameSettings:
    max_players: int = 5
    score_delta_limit: int = SCORE_DELTA_LIMIT
    join_code_attempts: int = DEFAULT_MAX_ATTEMPTS
    # Non-empty puts session creation in single-password mode.
    legacy_gm_password: str = ''

    @classmethod
    def from_config(cls, config) -> 'GameSettings':
        return cls(
            max_players=int(config.get('MAX_PLAYERS', 5)),
            score_delta_limit=int(config.get('SCORE_DELTA_LIMIT', SCORE_DELTA_LIMIT)),
            join_code_attempts=int(config.get('JOIN_CODE_MAX_ATTEMPTS', DEFAULT_MAX_ATTEMPTS)),
            legacy_gm_password=config.get('GM_PASSWORD') or '',
        )


class SessionService:
    """Shared plumbing for the services that act on one session."""

    def __init__(
        self,
        store: SessionStore,
        gateway,
        hasher: Optional[PasswordHasher] = None,
        settings: Optional[GameSettings] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.hasher = hasher or store.hasher
        self.settings = settings or GameSettings()

    def _require_session(self, join_code: str) -> Session:
        session = self.store.get_session(join_code)
        if session is None:
            raise GameError(ErrorCode.SESSION_NOT_FOUND, join_code)
        return session

    @contextmanager
    def _active_session(self, join_code: str) -> Iterator[Session]:
        """Yield the session with its lock held, after checking it still accepts changes."""
        session = self._require_session(join_code)
        with session.lock:
            if not session.is_active:
                raise GameError(ErrorCode.SESSION_INACTIVE, join_code)
            yield session

    def _broadcast(self, session: Session, event: str, payload, exclude_sid: Optional[str] = None) -> None:
        self.gateway.broadcast(session.join_code, event, payload, exclude_sid=exclude_sid)

    def _state_changed(self, session: Session, question_number: int) -> None:
        self._broadcast(session, 'game:stateChanged', {
            'joinCode': session.join_code,
            'newState': session.game_state.value,
            'questionNumber': question_number,
        })
