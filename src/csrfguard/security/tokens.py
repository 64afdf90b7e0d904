"""HMAC-signed, salted CSRF tokens with a millisecond timestamp.

Token format: ``{salt}.{timestamp_ms}.{signature}``

``salt`` is standard base64 of 32 random bytes and ``signature`` is standard
base64 of HMAC-SHA256 over ``"{salt}.{timestamp_ms}"``. Rotating the secret
instantly invalidates every outstanding token.

A fresh HMAC context is created for every call, so one codec can be shared by
concurrent requests without locking.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass

from csrfguard.exceptions import CSRFConfigurationError, RejectReason

__all__ = ["SALT_BYTES", "TokenCodec", "TokenVerification", "now_millis"]

logger = logging.getLogger(__name__)

SALT_BYTES = 32


def now_millis() -> int:
    """Milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class TokenVerification:
    """Result of ``TokenCodec.verify()``. ``timestamp`` is set only when valid."""

    valid: bool
    timestamp: int | None = None
    reason: RejectReason | None = None

    def __bool__(self) -> bool:
        return self.valid


class TokenCodec:
    """Issues and verifies signed tokens for one secret."""

    def __init__(self, secret: str | bytes):
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not isinstance(secret, bytes) or not secret:
            raise CSRFConfigurationError("CSRF secret must be a non-empty string")
        self._key = secret

    def issue(self, now_ms: int | None = None) -> str:
        """Return a new token stamped with *now_ms* (defaults to the current time)."""
        if now_ms is None:
            now_ms = now_millis()
        salt = base64.b64encode(secrets.token_bytes(SALT_BYTES)).decode("ascii")
        payload = f"{salt}.{now_ms}"
        return f"{payload}.{self._sign(payload)}"

    def verify(self, token: str, now_ms: int, timeout_ms: int) -> TokenVerification:
        """Check structure, signature and age of *token*.

        A token stamped exactly ``timeout_ms`` ago is still valid; one
        millisecond older is expired.
        """
        parts = token.split(".")
        if len(parts) != 3:
            logger.debug("Token does not have 3 segments")
            return TokenVerification(False, reason=RejectReason.MALFORMED_TOKEN)

        salt, stamp, signature = parts
        expected = self._sign(f"{salt}.{stamp}")
        if not hmac.compare_digest(_strip_ws(signature).encode(), expected.encode()):
            logger.debug("Token signature does not match")
            return TokenVerification(False, reason=RejectReason.BAD_SIGNATURE)

        ts = _parse_timestamp(stamp)
        if ts is None:
            return TokenVerification(False, reason=RejectReason.EXPIRED)
        if now_ms - ts > timeout_ms:
            logger.debug("Token expired %d ms ago", now_ms - ts - timeout_ms)
            return TokenVerification(False, reason=RejectReason.EXPIRED)

        return TokenVerification(True, timestamp=ts)

    @staticmethod
    def timestamp_of(token: str) -> int | None:
        """Timestamp segment of *token* without checking the signature."""
        parts = token.split(".")
        if len(parts) < 2:
            return None
        return _parse_timestamp(parts[1])

    def _sign(self, payload: str) -> str:
        digest = hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")


def _strip_ws(value: str) -> str:
    # MIME-style encoders wrap long output with CRLF
    return "".join(value.split())


def _parse_timestamp(value: str) -> int | None:
    value = value.strip()
    if not value.isascii() or not value.isdigit():
        logger.debug("Invalid token timestamp %r", value)
        return None
    return int(value)
