"""Game master access to sessions.

There is no GM account: whoever knows the password a session was created
with can list it, reconnect to it and drive it.
"""

import hmac
import logging
from typing import List

from buzzer.errors import ErrorCode, GameError
from buzzer.models import Session, now_ms
from buzzer.utils.join_codes import allocate_join_code
from buzzer.utils.validation import is_valid_join_code, is_valid_password, normalize_join_code

from .base import SessionService

logger = logging.getLogger(__name__)


class SessionAdmin(SessionService):

    def _check_gm_password(self, password) -> None:
        legacy = self.settings.legacy_gm_password
        if legacy:
            if not isinstance(password, str) or not hmac.compare_digest(password.encode(), legacy.encode()):
                raise GameError(ErrorCode.INVALID_GM_PASSWORD, "legacy password mismatch")
        elif not is_valid_password(password):
            raise GameError(ErrorCode.INVALID_GM_PASSWORD, "password outside 4-20 chars")

    def create_session(self, gm_password: str, sid: str) -> Session:
        self._check_gm_password(gm_password)
        password_hash = self.hasher.hash(gm_password)
        join_code = allocate_join_code(self.store.has_session, self.settings.join_code_attempts)
        session = self.store.create_session(join_code, password_hash)
        self.gateway.join_room(sid, join_code)
        logger.info(f"[session-created] code={join_code} sid={sid}")
        self.gateway.emit_to_caller(sid, 'session:created', {
            'joinCode': join_code,
            'session': session.to_dict(),
        })
        return session

    def get_active_sessions(self, gm_password: str) -> List[dict]:
        if not gm_password:
            raise GameError(ErrorCode.MISSING_REQUIRED_FIELD, "gmPassword")
        sessions = self.store.get_sessions_by_password(gm_password)
        logger.info(f"[gm-sessions] found={len(sessions)}")
        return sessions

    def reconnect_to_session(self, join_code: str, gm_password: str, sid: str) -> Session:
        join_code = normalize_join_code(join_code)
        if not is_valid_join_code(join_code):
            raise GameError(ErrorCode.INVALID_JOIN_CODE, join_code)
        with self._active_session(join_code) as session:
            password_hash = session.gm_password_hash

        if not self.hasher.verify(gm_password, password_hash):
            raise GameError(ErrorCode.SESSION_PASSWORD_MISMATCH, join_code)

        with self._active_session(join_code) as session:
            self.gateway.join_room(sid, join_code)
            self.store.update_activity(join_code)
            logger.info(f"[gm-reconnect] code={join_code} sid={sid}")
            self._broadcast(session, 'session:gmReconnected', {
                'joinCode': join_code,
                'timestamp': now_ms(),
            }, exclude_sid=sid)
            return session

    def end_session(self, join_code: str, sid: str) -> None:
        """Deactivate the session; the cleanup sweep removes it later."""
        with self._active_session(join_code) as session:
            session.is_active = False
            self.store.update_activity(join_code)
            logger.info(f"[session-ended] code={join_code}")
            self._broadcast(session, 'session:ended', {
                'joinCode': join_code,
                'reason': 'Game master ended the session',
            }, exclude_sid=sid)

    def close_session(self, join_code: str, sid: str) -> None:
        """Deactivate and remove the session straight away."""
        with self._active_session(join_code) as session:
            session.is_active = False
            self._broadcast(session, 'session:closed', {
                'joinCode': join_code,
                'reason': 'Game master closed the session',
            }, exclude_sid=sid)
        self.store.delete_session(join_code)
        logger.info(f"[session-closed] code={join_code}")
