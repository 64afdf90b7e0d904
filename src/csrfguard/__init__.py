"""csrfguard - signed, session-bound double-submit CSRF protection."""

from csrfguard.config import CSRFSettings
from csrfguard.dispatcher import CSRFDecision, CSRFRequest, RequestDispatcher
from csrfguard.exceptions import CSRFConfigurationError, CSRFError, RejectReason
from csrfguard.middleware import CSRFMiddleware
from csrfguard.security import OriginValidator, SessionBinder, TokenCodec
from csrfguard.sessions import MemorySession, MemorySessionManager, SessionMiddleware, SessionStore

__all__ = [
    "CSRFConfigurationError",
    "CSRFDecision",
    "CSRFError",
    "CSRFMiddleware",
    "CSRFRequest",
    "CSRFSettings",
    "MemorySession",
    "MemorySessionManager",
    "OriginValidator",
    "RejectReason",
    "RequestDispatcher",
    "SessionBinder",
    "SessionMiddleware",
    "SessionStore",
    "TokenCodec",
]
