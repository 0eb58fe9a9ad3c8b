"""
Configuration utilities for fetch_retry_client
"""
import dataclasses
from dataclasses import dataclass
from typing import Any, Iterator, Optional

import httpx

from .types import RetryCondition, RetryHook


# Default values
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF_SECONDS = 0.1
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_BACKOFF_SECONDS = 2.0


def default_retry_condition(
    response: Optional[httpx.Response],
    error: Optional[BaseException],
) -> bool:
    """
    Default retry predicate.

    Retries on any transport error and on client-error responses
    (400 <= status < 500). Server errors are returned as final; pass a
    custom condition for 5xx or 429 handling.

    Args:
        response: Response of the attempt, None on transport failure
        error: Transport error of the attempt, None on a completed round trip

    Returns:
        Whether the attempt should be retried
    """
    if error is not None:
        return True
    if response is not None and 400 <= response.status_code < 500:
        return True
    return False


@dataclass(frozen=True)
class ClientConfig:
    """Retry client configuration"""

    client: Optional[Any] = None
    """Underlying httpx client (or another sender). None: the facade creates one"""

    max_retries: int = DEFAULT_MAX_RETRIES
    """Attempts beyond the first (0 = no retries). Default: 5"""

    retry_condition: RetryCondition = default_retry_condition
    """Predicate deciding whether an attempt is retried"""

    initial_backoff_seconds: float = DEFAULT_INITIAL_BACKOFF_SECONDS
    """Wait before the second attempt (seconds). Default: 0.1"""

    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    """Growth factor applied to each subsequent wait. Default: 2.0"""

    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS
    """Ceiling for any single wait (seconds). Default: 2.0"""

    on_retry: Optional[RetryHook] = None
    """Callback invoked before each backoff wait"""

    def __post_init__(self) -> None:
        validate_config(self)

    def replace(self, **changes: Any) -> "ClientConfig":
        """Return a copy with ``changes`` applied (validated again)."""
        return dataclasses.replace(self, **changes)


def validate_config(config: ClientConfig) -> None:
    """Validate retry client configuration."""
    if isinstance(config.max_retries, bool) or not isinstance(config.max_retries, int):
        raise ValueError(f"max_retries must be an integer, got {config.max_retries!r}")
    if config.max_retries < 0:
        raise ValueError(f"max_retries must be >= 0, got {config.max_retries}")
    if config.initial_backoff_seconds < 0:
        raise ValueError(
            f"initial_backoff_seconds must be >= 0, got {config.initial_backoff_seconds}"
        )
    if config.backoff_multiplier < 1:
        raise ValueError(f"backoff_multiplier must be >= 1, got {config.backoff_multiplier}")
    if config.max_backoff_seconds < config.initial_backoff_seconds:
        raise ValueError(
            f"max_backoff_seconds ({config.max_backoff_seconds}) must be >= "
            f"initial_backoff_seconds ({config.initial_backoff_seconds})"
        )
    if not callable(config.retry_condition):
        raise ValueError("retry_condition must be callable")
    if config.on_retry is not None and not callable(config.on_retry):
        raise ValueError("on_retry must be callable")


DEFAULT_CLIENT_CONFIG = ClientConfig()


def merge_config(config: Optional[ClientConfig] = None, **overrides: Any) -> ClientConfig:
    """
    Merge configuration with defaults.

    Args:
        config: User-provided configuration
        **overrides: Field values applied on top (later wins)

    Returns:
        Complete configuration with defaults
    """
    base = config if config is not None else DEFAULT_CLIENT_CONFIG
    if overrides:
        return base.replace(**overrides)
    return base


def next_backoff(current: float, multiplier: float, ceiling: float) -> float:
    """
    Calculate the wait that follows ``current``.

    Args:
        current: Wait just used (seconds)
        multiplier: Growth factor (>= 1)
        ceiling: Maximum wait (seconds)

    Returns:
        min(current * multiplier, ceiling)
    """
    return min(current * multiplier, ceiling)


def backoff_schedule(config: ClientConfig) -> Iterator[float]:
    """Yield the successive backoff waits for ``config``, endlessly."""
    delay = min(config.initial_backoff_seconds, config.max_backoff_seconds)
    while True:
        yield delay
        delay = next_backoff(delay, config.backoff_multiplier, config.max_backoff_seconds)
