"""Client settings for cdplink.

Defaults can be overridden from the environment using the ``CDPLINK_`` prefix,
e.g. ``CDPLINK_PORT=9333`` or ``CDPLINK_WAIT_TIMEOUT=30``.
"""

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "CDPLINK_"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9222
DEFAULT_WAIT_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 0.05
DEFAULT_CLOSE_ATTEMPTS = 100


class ClientSettings(BaseModel):
    """Connection and session tuning for a CDP client."""

    host: str = Field(default=DEFAULT_HOST, description="Browser debugging host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Remote debugging port")
    discovery_timeout: float = Field(default=5.0, description="Timeout for the /json request")
    open_timeout: float = Field(
        default=10.0, description="Time slice for one WebSocket handshake attempt"
    )
    handshake_attempts: int = Field(
        default=3, description="Handshake resumptions allowed per candidate address"
    )
    close_timeout: float = Field(default=1.0, description="Wait for the peer's close frame")
    max_size: int = Field(default=100 * 1024 * 1024, description="Maximum incoming message size")
    wait_timeout: float = Field(
        default=DEFAULT_WAIT_TIMEOUT, description="Default budget for blocking waits"
    )
    poll_interval: float = Field(
        default=DEFAULT_POLL_INTERVAL, description="Readiness wait slice while polling"
    )
    close_attempts: int = Field(
        default=DEFAULT_CLOSE_ATTEMPTS, description="Drain reads allowed during close"
    )

    @field_validator(
        "discovery_timeout",
        "open_timeout",
        "close_timeout",
        "wait_timeout",
        "poll_interval",
    )
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("handshake_attempts", "close_attempts", "max_size")
    @classmethod
    def _positive_count(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "ClientSettings":
        """Build settings from ``CDPLINK_*`` variables, then explicit overrides."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            key = f"{ENV_PREFIX}{name.upper()}"
            if key in env:
                values[name] = env[key]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
