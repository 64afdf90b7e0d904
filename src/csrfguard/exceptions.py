# CSRF guard exceptions.
# Created: 2026-10-19
#
# Request-time validation failures never raise; they are reported as a
# RejectReason on the dispatcher decision. Exceptions are reserved for
# problems that must stop the application from starting.

from __future__ import annotations

from enum import Enum


class CSRFError(Exception):
    """Base class for csrfguard errors."""


class CSRFConfigurationError(CSRFError):
    """Raised when the guard cannot be constructed (bad secret, bad origin, ...)."""


class RejectReason(str, Enum):
    ORIGIN_MISMATCH = "origin_mismatch"
    MISSING_TOKEN = "missing_token"  # header/form or cookie absent or blank
    TOKEN_MISMATCH = "token_mismatch"
    NO_SESSION_BINDING = "no_session_binding"
    FOREIGN_SESSION = "foreign_session"  # bound to another session id
    MALFORMED_TOKEN = "malformed_token"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
