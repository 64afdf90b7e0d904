"""Same-origin verification using the ``Origin`` and ``Referer`` headers.

The check is opt-in: with no trusted origin configured every request passes.
Default ports are normalized, so ``https://app.example`` and
``https://app.example:443`` name the same origin.
"""

from __future__ import annotations

import logging
from typing import NamedTuple
from urllib.parse import urlsplit

from csrfguard.exceptions import CSRFConfigurationError

__all__ = ["Origin", "OriginValidator", "parse_origin"]

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


class Origin(NamedTuple):
    scheme: str
    host: str
    port: int | None


def parse_origin(value: str) -> Origin | None:
    """Parse *value* into ``(scheme, host, port)``; None if it is not a usable URI."""
    try:
        parts = urlsplit(value.strip())
        port = parts.port
    except ValueError:
        return None
    scheme = parts.scheme.lower()
    host = parts.hostname
    if not scheme or not host:
        return None
    if port is None:
        port = _DEFAULT_PORTS.get(scheme)
    return Origin(scheme, host, port)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class OriginValidator:
    """Compares request ``Origin``/``Referer`` against one trusted origin."""

    def __init__(self, trusted_origin: str | None = None):
        self._trusted: Origin | None = None
        if trusted_origin is not None:
            self._trusted = parse_origin(trusted_origin)
            if self._trusted is None:
                raise CSRFConfigurationError(f"Invalid trusted origin: {trusted_origin!r}")

    @property
    def trusted(self) -> Origin | None:
        return self._trusted

    def validate(self, origin: str | None, referer: str | None) -> bool:
        if self._trusted is None:
            return True

        source = origin
        if _is_blank(source):
            source = referer
            if _is_blank(source):
                logger.debug("Origin and Referer request headers are both absent or empty")
                return False

        parsed = parse_origin(source)
        if parsed is None:
            logger.debug("Invalid source URI %r", source)
            return False

        if parsed != self._trusted:
            logger.debug("Scheme/host/port of %r do not match the trusted origin", source)
            return False
        return True
