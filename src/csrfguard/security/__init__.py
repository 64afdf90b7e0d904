"""Token, origin and session-binding primitives."""

from csrfguard.security.origin import OriginValidator
from csrfguard.security.session_binding import SessionBinder
from csrfguard.security.tokens import TokenCodec, TokenVerification

__all__ = ["OriginValidator", "SessionBinder", "TokenCodec", "TokenVerification"]
