"""Starlette/FastAPI integration for the CSRF guard.

``CSRFMiddleware`` translates a Starlette ``Request`` into a ``CSRFRequest``,
runs the dispatcher and applies the decision:

- rejected  -> 403 ``{"detail": "Forbidden"}``; the route is never reached
- accepted  -> ``request.state.csrf_token`` is set for templates and handlers,
  and a new token is written to the cookie when one was issued

The session is read from ``request.state.session`` (see
``csrfguard.sessions.SessionMiddleware``). Without one the guard still works
in stateless double-submit mode.
"""

from __future__ import annotations

import logging

from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from csrfguard.config import CSRFSettings
from csrfguard.dispatcher import MUTATING_METHODS, CSRFDecision, CSRFRequest, RequestDispatcher

logger = logging.getLogger(__name__)

FORBIDDEN_STATUS = 403

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def forbidden_response() -> JSONResponse:
    """The single response used for every CSRF rejection."""
    return JSONResponse(status_code=FORBIDDEN_STATUS, content={"detail": "Forbidden"})


class CSRFMiddleware(BaseHTTPMiddleware):
    """Double-submit cookie CSRF protection with session binding.

    Args:
        app: The ASGI application.
        settings: Frozen guard settings. Build a new middleware to change them.
        dispatcher: Optional pre-built dispatcher (tests inject a fixed clock).
    """

    def __init__(
        self,
        app,
        settings: CSRFSettings,
        dispatcher: RequestDispatcher | None = None,
    ) -> None:
        super().__init__(app)
        self.settings = settings
        self.dispatcher = dispatcher or RequestDispatcher(settings)

    async def dispatch(self, request: Request, call_next) -> Response:
        csrf_request = await self._build_request(request)
        decision = self.dispatcher.dispatch(csrf_request)

        if not decision.accepted:
            logger.debug(
                "CSRF rejected %s %s: %s",
                request.method,
                request.url.path,
                decision.reason.value if decision.reason else "unknown",
            )
            return forbidden_response()

        if decision.token is not None:
            request.state.csrf_token = decision.token

        response = await call_next(request)

        if decision.set_cookie:
            self._write_cookie(response, decision)
        return response

    async def _build_request(self, request: Request) -> CSRFRequest:
        name = self.settings.header_name
        header_token = request.headers.get(name)
        form_token = None
        if header_token is None and request.method.upper() in MUTATING_METHODS:
            form_token = await self._read_form_token(request, name)

        return CSRFRequest(
            method=request.method,
            url=str(request.url),
            origin=request.headers.get("origin"),
            referer=request.headers.get("referer"),
            header_token=header_token,
            form_token=form_token,
            cookie_token=request.cookies.get(self.settings.cookie_name),
            session=getattr(request.state, "session", None),
        )

    @staticmethod
    async def _read_form_token(request: Request, name: str) -> str | None:
        content_type = request.headers.get("content-type", "")
        if not content_type.startswith(_FORM_CONTENT_TYPES):
            return None
        # cache the body so the route can still read it
        await request.body()
        try:
            form = await request.form()
        except (MultiPartException, HTTPException):
            logger.debug("Could not parse form body", exc_info=True)
            return None
        value = form.get(name)
        return value if isinstance(value, str) else None

    def _write_cookie(self, response: Response, decision: CSRFDecision) -> None:
        response.headers.append("set-cookie", csrf_cookie_header(self.settings, decision.token))


def csrf_cookie_header(settings: CSRFSettings, token: str) -> str:
    """``Set-Cookie`` value carrying *token*.

    Built by hand because ``Response.set_cookie`` quotes values containing
    ``/`` or ``=``, and scripts reading ``document.cookie`` would then send
    the quotes back in the header. Base64 is a valid RFC 6265 cookie-octet
    sequence as is.
    """
    parts = [
        f"{settings.cookie_name}={token}",
        f"Path={settings.cookie_path}",
        f"SameSite={settings.same_site.capitalize()}",
    ]
    if settings.cookie_http_only:
        parts.append("HttpOnly")
    return "; ".join(parts)
