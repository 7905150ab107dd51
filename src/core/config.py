"""Runtime configuration model for Estool.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import (
    DEFAULT_CHANNEL_CAPACITY,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SCROLL_KEEPALIVE,
    SUPPORTED_LOG_LEVELS,
)
from core.errors import EstoolConfigError


@dataclass(frozen=True)
class EstoolConfig:
    """Validated runtime configuration.

    Attributes:
        scroll_keepalive: Server-side scroll retention window, e.g. ``5m``.
        channel_capacity: Number of batches buffered between extract and ingest.
        retry_delay: Pause in seconds between leftover drain rounds.
        s3_region: Optional default AWS region for S3 dumps.
        s3_profile: Optional AWS profile for boto3 session initialization.
        log_level: Minimum structured log level.
    """

    scroll_keepalive: str = DEFAULT_SCROLL_KEEPALIVE
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY
    retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS
    s3_region: str | None = None
    s3_profile: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "EstoolConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            EstoolConfigError: If environment values are invalid.
        """
        capacity_value = os.getenv("ESTOOL_CHANNEL_CAPACITY", str(DEFAULT_CHANNEL_CAPACITY))
        retry_delay_value = os.getenv("ESTOOL_RETRY_DELAY", str(DEFAULT_RETRY_DELAY_SECONDS))
        log_level_value = os.getenv("ESTOOL_LOG_LEVEL", DEFAULT_LOG_LEVEL)
        return cls(
            scroll_keepalive=_parse_keepalive(
                os.getenv("ESTOOL_SCROLL_KEEPALIVE", DEFAULT_SCROLL_KEEPALIVE)
            ),
            channel_capacity=_parse_channel_capacity(capacity_value),
            retry_delay=_parse_retry_delay(retry_delay_value),
            s3_region=os.getenv("ESTOOL_S3_REGION"),
            s3_profile=os.getenv("ESTOOL_S3_PROFILE"),
            log_level=_parse_log_level(log_level_value),
        )


def _parse_keepalive(raw_value: str) -> str:
    """Validate a scroll keep-alive duration such as ``5m`` or ``90s``."""
    value = raw_value.strip()
    if len(value) < 2 or not value[:-1].isdigit() or value[-1] not in "smh":
        raise EstoolConfigError(
            "Invalid ESTOOL_SCROLL_KEEPALIVE value: "
            f"expected a duration like '5m' or '90s', got '{raw_value}'."
        )
    return value


def _parse_channel_capacity(raw_value: str) -> int:
    """Parse the channel capacity environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Positive batch capacity.

    Raises:
        EstoolConfigError: If value is not a positive integer.
    """
    try:
        capacity = int(raw_value)
    except ValueError as error:
        raise EstoolConfigError(
            "Invalid ESTOOL_CHANNEL_CAPACITY value: "
            f"expected integer, got '{raw_value}'. "
            "Set ESTOOL_CHANNEL_CAPACITY to a positive number."
        ) from error
    if capacity < 1:
        raise EstoolConfigError(
            f"Invalid ESTOOL_CHANNEL_CAPACITY value {capacity}: must be at least 1."
        )
    return capacity


def _parse_retry_delay(raw_value: str) -> float:
    try:
        delay = float(raw_value)
    except ValueError as error:
        raise EstoolConfigError(
            "Invalid ESTOOL_RETRY_DELAY value: "
            f"expected seconds as a number, got '{raw_value}'."
        ) from error
    if delay < 0:
        raise EstoolConfigError(
            f"Invalid ESTOOL_RETRY_DELAY value {delay}: must not be negative."
        )
    return delay


def _parse_log_level(raw_value: str) -> str:
    level = raw_value.strip().lower()
    if level not in SUPPORTED_LOG_LEVELS:
        raise EstoolConfigError(
            f"Invalid ESTOOL_LOG_LEVEL value '{raw_value}'. "
            f"Supported levels: {', '.join(SUPPORTED_LOG_LEVELS)}."
        )
    return level
