"""CSRF guard configuration.

Settings are frozen once built. To change anything, derive a new value with
``with_options()`` and build a new middleware from it; never mutate settings
that live traffic is already using.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from csrfguard.exceptions import CSRFConfigurationError
from csrfguard.security.origin import parse_origin

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = "XSRF-TOKEN"
DEFAULT_HEADER_NAME = "X-XSRF-TOKEN"
DEFAULT_COOKIE_PATH = "/"
DEFAULT_TIMEOUT = timedelta(minutes=30)

ENV_PREFIX = "CSRF_"


class CSRFSettings(BaseModel):
    """Immutable CSRF guard settings.

    ``header_name`` is also the session key under which the token binding is
    stored, so issuing and validating always look in the same place.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    secret: SecretStr
    cookie_name: str = Field(default=DEFAULT_COOKIE_NAME, min_length=1)
    cookie_path: str = Field(default=DEFAULT_COOKIE_PATH, min_length=1)
    cookie_http_only: bool = False
    header_name: str = Field(default=DEFAULT_HEADER_NAME, min_length=1)
    timeout: timedelta = DEFAULT_TIMEOUT
    origin: str | None = None
    nag_https: bool = False

    @field_validator("secret")
    @classmethod
    def _secret_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("secret must not be empty")
        return v

    @field_validator("timeout")
    @classmethod
    def _timeout_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("timeout must be positive")
        return v

    @field_validator("origin")
    @classmethod
    def _origin_parses(cls, v: str | None) -> str | None:
        if v is not None and parse_origin(v) is None:
            raise ValueError(f"origin must be an absolute URI with scheme and host, got {v!r}")
        return v

    @property
    def same_site(self) -> Literal["strict"]:
        # not configurable
        return "strict"

    @property
    def timeout_ms(self) -> int:
        return self.timeout // timedelta(milliseconds=1)

    def with_options(self, **changes: Any) -> CSRFSettings:
        """Return a validated copy with *changes* applied."""
        data = self.model_dump()
        data.update(changes)
        try:
            return type(self).model_validate(data)
        except ValidationError as exc:
            raise CSRFConfigurationError(str(exc)) from exc

    @classmethod
    def load(cls, environ: dict[str, str] | None = None, **overrides: Any) -> CSRFSettings:
        """Build settings from ``CSRF_*`` environment variables plus *overrides*."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = env.get(ENV_PREFIX + name.upper())
            if raw is None:
                continue
            if name == "timeout" and raw.strip().isdigit():
                data[name] = int(raw.strip())
            else:
                data[name] = raw
        data.update(overrides)
        try:
            settings = cls.model_validate(data)
        except ValidationError as exc:
            raise CSRFConfigurationError(str(exc)) from exc
        logger.debug(
            "CSRF settings loaded (cookie=%s, header=%s, origin=%s)",
            settings.cookie_name,
            settings.header_name,
            settings.origin,
        )
        return settings
