"""In-process registry of assessment sessions.

Sessions are plain :class:`AssessmentSession` values; the registry only maps
ids to them.  Sync route handlers run in a threadpool, so any handler that
mutates a session does so inside :meth:`SessionRegistry.locked`, which
holds that session's own lock.  The registry lock only guards the map.

Sessions idle for longer than ``ttl_minutes`` (measured from
``updated_at``) are evicted: expired ids behave as unknown ones.
``ttl_minutes=0`` keeps sessions until they are admitted.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from triage_engine.errors import SessionNotFoundError
from triage_engine.models.session import AssessmentSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Session map with idle expiry.

    Args:
        ttl_minutes: idle lifetime of a session; 0 disables expiry
        clock: returns the current UTC time (overridable in tests)
    """

    def __init__(
        self,
        ttl_minutes: int = 0,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sessions: dict[str, AssessmentSession] = {}
        self._session_locks: dict[str, threading.Lock] = {}
        self._lock = threading.RLock()
        self._ttl = timedelta(minutes=ttl_minutes) if ttl_minutes > 0 else None
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self._sessions)

    def add(self, session: AssessmentSession) -> AssessmentSession:
        with self._lock:
            self.evict_expired()
            self._sessions[session.session_id] = session
            self._session_locks[session.session_id] = threading.Lock()
        return session

    def get(self, session_id: str) -> AssessmentSession:
        """Raises SessionNotFoundError for unknown or expired ids."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None and self._is_expired(session):
                self._drop(session_id)
                logger.info("Assessment %s expired", session_id)
                session = None
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    def remove(self, session_id: str) -> None:
        """Forget a session; ids already gone (e.g. expired) are ignored."""
        with self._lock:
            self._drop(session_id)
        logger.debug("Removed assessment %s", session_id)

    def evict_expired(self) -> int:
        """Drop every idle session; returns how many were evicted."""
        if self._ttl is None:
            return 0
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if self._is_expired(s)]
            for sid in expired:
                self._drop(sid)
        if expired:
            logger.info("Evicted %d idle assessments", len(expired))
        return len(expired)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[AssessmentSession]:
        """Hold one session's lock while the caller mutates it.

        Other sessions are not blocked, even if the caller does slow I/O.
        """
        with self._lock:
            self.get(session_id)
            session_lock = self._session_locks[session_id]
        with session_lock:
            # Re-check: the session may have been admitted while we waited
            yield self.get(session_id)

    def _is_expired(self, session: AssessmentSession) -> bool:
        return self._ttl is not None and self._clock() - session.updated_at > self._ttl

    def _drop(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)
        self._session_locks.pop(session_id, None)
