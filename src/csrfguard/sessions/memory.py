"""In-memory session store.

Sessions live in a dict keyed by identifier and are lost on restart. Each
session guards its data with a lock so ``remove()`` is a true
get-and-remove even when requests for the same session run concurrently.
"""

from __future__ import annotations

import logging
import secrets
import threading
import time

__all__ = ["MemorySession", "MemorySessionManager"]

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return secrets.token_urlsafe(24)


class MemorySession:
    """A single session. Satisfies ``SessionStore``."""

    __slots__ = ("_id", "_data", "_lock", "last_access")

    def __init__(self, session_id: str | None = None):
        self._id = session_id or _new_session_id()
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()
        self.last_access: float = time.monotonic()

    def identifier(self) -> str:
        return self._id

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> str | None:
        with self._lock:
            return self._data.pop(key, None)

    def put_if_absent(self, key: str, value: str) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def __len__(self) -> int:
        return len(self._data)


class MemorySessionManager:
    """Creates, finds and re-keys ``MemorySession`` objects.

    Parameters
    ----------
    idle_timeout : float
        Seconds of inactivity after which ``cleanup()`` drops a session.
    """

    def __init__(self, idle_timeout: float = 1800.0):
        self.idle_timeout = idle_timeout
        self._sessions: dict[str, MemorySession] = {}
        self._lock = threading.Lock()

    def create(self) -> MemorySession:
        session = MemorySession()
        with self._lock:
            self._sessions[session.identifier()] = session
        return session

    def get(self, session_id: str | None) -> MemorySession | None:
        if not session_id:
            return None
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            session.last_access = time.monotonic()
        return session

    def regenerate(self, session: MemorySession) -> MemorySession:
        """Give *session* a new identifier, keeping its data.

        Used on privilege changes so anything bound to the old identifier
        stops being valid.
        """
        with self._lock:
            self._sessions.pop(session.identifier(), None)
            session._id = _new_session_id()
            self._sessions[session.identifier()] = session
        logger.debug("Session identifier regenerated")
        return session

    def destroy(self, session: MemorySession) -> None:
        with self._lock:
            self._sessions.pop(session.identifier(), None)

    def cleanup(self) -> int:
        """Remove sessions idle longer than ``idle_timeout``. Returns count removed."""
        now = time.monotonic()
        with self._lock:
            stale = [
                k for k, s in self._sessions.items() if now - s.last_access > self.idle_timeout
            ]
            for k in stale:
                del self._sessions[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._sessions)
