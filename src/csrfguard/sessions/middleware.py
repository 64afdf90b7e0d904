"""Cookie-keyed session middleware for the in-memory store.

Attaches a ``MemorySession`` to ``request.state.session`` and keeps the
session cookie in sync when the identifier is created or regenerated.
Register it *outside* ``CSRFMiddleware`` so the session exists by the time
the CSRF check runs.
"""

from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from csrfguard.sessions.memory import MemorySessionManager

logger = logging.getLogger(__name__)

DEFAULT_SESSION_COOKIE = "session_id"
DEFAULT_CLEANUP_INTERVAL = 60.0


class SessionMiddleware(BaseHTTPMiddleware):
    """Loads or creates the session and evicts idle ones.

    Eviction runs inline at most once per *cleanup_interval* seconds
    (default: the smaller of one minute and the manager's idle timeout).
    """

    def __init__(
        self,
        app,
        manager: MemorySessionManager,
        cookie_name: str = DEFAULT_SESSION_COOKIE,
        cleanup_interval: float | None = None,
    ) -> None:
        super().__init__(app)
        self.manager = manager
        self.cookie_name = cookie_name
        if cleanup_interval is None:
            cleanup_interval = min(DEFAULT_CLEANUP_INTERVAL, manager.idle_timeout)
        self.cleanup_interval = cleanup_interval
        self._last_cleanup = time.monotonic()

    def _maybe_cleanup(self) -> None:
        now = time.monotonic()
        if now - self._last_cleanup < self.cleanup_interval:
            return
        self._last_cleanup = now
        removed = self.manager.cleanup()
        if removed:
            logger.debug("Evicted %d idle sessions", removed)

    async def dispatch(self, request: Request, call_next) -> Response:
        self._maybe_cleanup()
        incoming_id = request.cookies.get(self.cookie_name)
        session = self.manager.get(incoming_id)
        if session is None:
            session = self.manager.create()
        request.state.session = session

        response = await call_next(request)

        # identifier may have been regenerated downstream
        if session.identifier() != incoming_id:
            response.set_cookie(
                key=self.cookie_name,
                value=session.identifier(),
                httponly=True,
                samesite="strict",
                path="/",
            )
        return response
