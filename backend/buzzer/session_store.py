"""In-process registry of live game sessions.

The store is the only place sessions are added to or removed from the
registry. Everything lives in memory and is lost on restart.
"""

from __future__ import annotations

import logging
import threading
from threading import RLock
from typing import Callable, Dict, List, Optional, Tuple

from buzzer.errors import ErrorCode, GameError
from buzzer.models import Session, now_ms
from buzzer.utils.passwords import PasswordHasher

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_INTERVAL_SEC = 600
DEFAULT_INACTIVE_THRESHOLD_SEC = 7200


def _start_thread(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True, name='session-cleanup')
    thread.start()
    return thread


class SessionStore:
    def __init__(
        self,
        hasher: PasswordHasher,
        cleanup_interval_sec: float = DEFAULT_CLEANUP_INTERVAL_SEC,
        inactive_threshold_sec: float = DEFAULT_INACTIVE_THRESHOLD_SEC,
        clock: Callable[[], int] = now_ms,
    ):
        self.hasher = hasher
        self.cleanup_interval_sec = cleanup_interval_sec
        self.inactive_threshold_ms = int(inactive_threshold_sec * 1000)
        self._clock = clock
        self._lock = RLock()
        self._sessions: Dict[str, Session] = {}
        # socket id -> [(join_code, player_id)]
        self._connections: Dict[str, List[Tuple[str, str]]] = {}
        self._cleanup_generation = 0
        self._cleanup_running = False
        self._cleanup_stop: Optional[threading.Event] = None
        self._cleanup_worker = None

    # ---- registry ----

    def create_session(self, join_code: str, gm_password_hash: str) -> Session:
        with self._lock:
            if join_code in self._sessions:
                raise GameError(ErrorCode.INTERNAL_ERROR, f"join code {join_code} already in use")
            now = self._clock()
            session = Session(
                join_code=join_code,
                gm_password_hash=gm_password_hash,
                created_at=now,
                last_activity=now,
            )
            self._sessions[join_code] = session
            return session

    def get_session(self, join_code: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(join_code)

    def has_session(self, join_code: str) -> bool:
        with self._lock:
            return join_code in self._sessions

    def delete_session(self, join_code: str) -> bool:
        with self._lock:
            session = self._sessions.pop(join_code, None)
            if session is None:
                return False
            self._forget_connections(join_code)
            return True

    def get_all_sessions(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def update_activity(self, join_code: str) -> None:
        session = self.get_session(join_code)
        if session is not None:
            session.touch(self._clock())

    def get_sessions_by_password(self, password: str) -> List[dict]:
        """Metadata for every live session created with ``password``, most recent first.

        Each session carries its own salted hash, so this verifies against
        each one in turn.
        """
        matches = []
        for session in self.get_all_sessions():
            if not session.is_active:
                continue
            if self.hasher.verify(password, session.gm_password_hash):
                matches.append(session.to_metadata())
        matches.sort(key=lambda meta: meta['lastActivity'], reverse=True)
        return matches

    # ---- transport references ----

    def bind_connection(self, sid: str, join_code: str, player_id: str) -> None:
        with self._lock:
            # A player has at most one live socket.
            for other_sid, refs in list(self._connections.items()):
                if (join_code, player_id) in refs and other_sid != sid:
                    refs.remove((join_code, player_id))
                    if not refs:
                        del self._connections[other_sid]
            refs = self._connections.setdefault(sid, [])
            if (join_code, player_id) not in refs:
                refs.append((join_code, player_id))

    def release_connection(self, sid: str) -> List[Tuple[str, str]]:
        with self._lock:
            return self._connections.pop(sid, [])

    def _forget_connections(self, join_code: str) -> None:
        for sid, refs in list(self._connections.items()):
            remaining = [ref for ref in refs if ref[0] != join_code]
            if remaining:
                self._connections[sid] = remaining
            else:
                del self._connections[sid]

    # ---- inactivity sweep ----

    def cleanup_inactive_sessions(self, now: Optional[int] = None) -> List[str]:
        """Remove ended sessions and sessions idle longer than the threshold."""
        now = now if now is not None else self._clock()
        with self._lock:
            expired = [
                code for code, session in self._sessions.items()
                if not session.is_active or now - session.last_activity > self.inactive_threshold_ms
            ]
            for code in expired:
                del self._sessions[code]
                self._forget_connections(code)
                logger.info(f"[cleanup] removed session={code}")
            if expired:
                logger.info(f"[cleanup] removed={len(expired)} remaining={len(self._sessions)}")
        return expired

    @property
    def cleanup_running(self) -> bool:
        return self._cleanup_running

    def start_cleanup(self, start_background_task=None, sleep=None) -> None:
        """Start the periodic sweep.

        ``start_background_task`` lets the caller run the loop on the Socket.IO
        async backend; it defaults to a daemon thread. Between sweeps the loop
        waits on a stop event, so ``stop_cleanup`` wakes it at once. A custom
        ``sleep`` replaces that wait.
        """
        with self._lock:
            if self._cleanup_running:
                return
            self._cleanup_running = True
            self._cleanup_generation += 1
            generation = self._cleanup_generation
            stop_event = threading.Event()
            self._cleanup_stop = stop_event
        starter = start_background_task or _start_thread
        self._cleanup_worker = starter(self._cleanup_loop, generation, stop_event, sleep)
        logger.info(f"[cleanup-start] interval={self.cleanup_interval_sec}s threshold={self.inactive_threshold_ms}ms")

    def stop_cleanup(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the sweep and wait up to ``timeout`` seconds for the worker to exit."""
        with self._lock:
            if not self._cleanup_running:
                return
            self._cleanup_running = False
            self._cleanup_generation += 1
            stop_event, self._cleanup_stop = self._cleanup_stop, None
            worker, self._cleanup_worker = self._cleanup_worker, None
        if stop_event is not None:
            stop_event.set()
        join = getattr(worker, 'join', None)
        if callable(join) and worker is not threading.current_thread():
            join(timeout)
        logger.info("[cleanup-stop]")

    def _cleanup_loop(self, generation: int, stop_event: threading.Event, sleep=None) -> None:
        while True:
            if sleep is None:
                if stop_event.wait(self.cleanup_interval_sec):
                    return
            else:
                sleep(self.cleanup_interval_sec)
            if stop_event.is_set() or generation != self._cleanup_generation:
                return
            try:
                self.cleanup_inactive_sessions()
            except Exception:
                logger.exception("[cleanup-error]")
