"""Per-request CSRF decision logic.

Framework-agnostic and synchronous: the HTTP layer builds a ``CSRFRequest``,
calls ``RequestDispatcher.dispatch()`` and applies the returned
``CSRFDecision``. Every rejection carries an internal ``RejectReason`` for
diagnostics; callers must answer all of them with the same response.

Flow:
  1. Origin gate (all methods)
  2. GET                      -> issue, or reuse the session-bound token
  3. POST/PUT/PATCH/DELETE    -> double-submit + session binding + signature/expiry
  4. anything else            -> pass through
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from dataclasses import dataclass

from csrfguard.config import CSRFSettings
from csrfguard.exceptions import RejectReason
from csrfguard.security.origin import OriginValidator
from csrfguard.security.session_binding import SessionBinder
from csrfguard.security.tokens import TokenCodec, now_millis
from csrfguard.sessions.protocol import SessionStore

__all__ = [
    "MUTATING_METHODS",
    "SAFE_METHODS",
    "CSRFDecision",
    "CSRFRequest",
    "RequestDispatcher",
]

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET"})
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True)
class CSRFRequest:
    """What the dispatcher needs to know about one inbound request."""

    method: str
    url: str = ""
    origin: str | None = None
    referer: str | None = None
    header_token: str | None = None
    form_token: str | None = None
    cookie_token: str | None = None
    session: SessionStore | None = None


@dataclass(frozen=True)
class CSRFDecision:
    accepted: bool
    token: str | None = None  # exposed to downstream handlers
    set_cookie: bool = False  # token is new and must be written to the cookie
    reason: RejectReason | None = None

    @classmethod
    def reject(cls, reason: RejectReason) -> CSRFDecision:
        return cls(False, reason=reason)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class RequestDispatcher:
    """Applies the CSRF protocol to requests for one set of settings."""

    def __init__(
        self,
        settings: CSRFSettings,
        clock: Callable[[], int] = now_millis,
    ):
        self.settings = settings
        self.codec = TokenCodec(settings.secret.get_secret_value())
        self.origin_validator = OriginValidator(settings.origin)
        self.binder = SessionBinder(settings.header_name)
        self._clock = clock
        self._timeout_ms = settings.timeout_ms

    def dispatch(self, request: CSRFRequest) -> CSRFDecision:
        if self.settings.nag_https and not request.url.startswith("https:"):
            logger.warning(
                "Using session cookies without https could make you susceptible "
                "to session hijacking: %s",
                request.url,
            )

        if not self.origin_validator.validate(request.origin, request.referer):
            return CSRFDecision.reject(RejectReason.ORIGIN_MISMATCH)

        method = request.method.upper()
        if method in SAFE_METHODS:
            return self._handle_safe(request.session)
        if method in MUTATING_METHODS:
            return self._handle_mutating(request)
        return CSRFDecision(True)

    # ------------------------------------------------------------------
    # GET
    # ------------------------------------------------------------------

    def _handle_safe(self, session: SessionStore | None) -> CSRFDecision:
        if session is None:
            # nothing to remember tokens in, so every request gets a fresh one
            return CSRFDecision(True, token=self.codec.issue(self._clock()), set_cookie=True)

        existing = self.binder.lookup(session)
        if existing is not None:
            ts = self.codec.timestamp_of(existing)
            if ts is not None and self._clock() - ts <= self._timeout_ms:
                # still valid for this session; the client already holds it
                return CSRFDecision(True, token=existing)

        return CSRFDecision(True, token=self._issue(session), set_cookie=True)

    # ------------------------------------------------------------------
    # POST / PUT / PATCH / DELETE
    # ------------------------------------------------------------------

    def _handle_mutating(self, request: CSRFRequest) -> CSRFDecision:
        candidate = request.header_token
        if candidate is None:
            candidate = request.form_token
        cookie = request.cookie_token

        if _is_blank(candidate) or _is_blank(cookie):
            logger.debug("Token provided via HTTP header/form or cookie is absent or empty")
            return CSRFDecision.reject(RejectReason.MISSING_TOKEN)

        if not hmac.compare_digest(candidate.encode(), cookie.encode()):
            logger.debug("Token provided via HTTP header and via cookie are not equal")
            return CSRFDecision.reject(RejectReason.TOKEN_MISMATCH)

        session = request.session
        if session is not None:
            # single use: the binding is gone from here on, whatever happens below
            reason = self.binder.claim(session, candidate)
            if reason is not None:
                return CSRFDecision.reject(reason)

        result = self.codec.verify(candidate, self._clock(), self._timeout_ms)
        if not result.valid:
            return CSRFDecision.reject(result.reason)

        return CSRFDecision(True, token=self._issue(session), set_cookie=True)

    def _issue(self, session: SessionStore | None) -> str:
        token = self.codec.issue(self._clock())
        if session is not None:
            self.binder.bind(session, token)
        return token
