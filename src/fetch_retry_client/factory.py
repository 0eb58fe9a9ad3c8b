"""
Factory functions for creating retry-enabled clients and transports
"""
from typing import Any, Optional

import httpx

from .client import AsyncRetryClient, RetryClient
from .config import ClientConfig, default_retry_condition, merge_config
from .transport import RetryTransport, SyncRetryTransport


def _retry_on_server_errors(response: Optional[httpx.Response], error: Optional[BaseException]) -> bool:
    if error is not None:
        return True
    return response is not None and (response.status_code == 429 or response.status_code >= 500)


# Preset retry configurations
RETRY_PRESETS: dict[str, dict[str, Any]] = {
    "default": {
        "max_retries": 5,
        "initial_backoff_seconds": 0.1,
        "backoff_multiplier": 2.0,
        "max_backoff_seconds": 2.0,
        "retry_condition": default_retry_condition,
    },
    "quick": {
        "max_retries": 2,
        "initial_backoff_seconds": 0.05,
        "backoff_multiplier": 2.0,
        "max_backoff_seconds": 0.5,
    },
    "aggressive": {
        "max_retries": 8,
        "initial_backoff_seconds": 0.25,
        "backoff_multiplier": 2.0,
        "max_backoff_seconds": 30.0,
        "retry_condition": _retry_on_server_errors,
    },
    "gentle": {
        "max_retries": 5,
        "initial_backoff_seconds": 2.0,
        "backoff_multiplier": 3.0,
        "max_backoff_seconds": 120.0,
        "retry_condition": _retry_on_server_errors,
    },
}


_CONFIG_FIELDS = {
    "max_retries",
    "retry_condition",
    "initial_backoff_seconds",
    "backoff_multiplier",
    "max_backoff_seconds",
    "on_retry",
}


def resolve_preset(
    preset: Optional[str] = None,
    config: Optional[ClientConfig] = None,
    **overrides: Any,
) -> ClientConfig:
    """
    Build a config from a preset, an explicit config and field overrides.

    Precedence (later wins): defaults, ``config``, ``preset``, ``overrides``.

    Raises:
        ValueError: Unknown preset name
    """
    changes: dict[str, Any] = {}
    if preset is not None:
        if preset not in RETRY_PRESETS:
            raise ValueError(f"Unknown retry preset: {preset!r} (known: {sorted(RETRY_PRESETS)})")
        changes.update(RETRY_PRESETS[preset])
    changes.update(overrides)
    return merge_config(config, **changes)


def _split_kwargs(kwargs: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    retry_kwargs = {k: v for k, v in kwargs.items() if k in _CONFIG_FIELDS}
    client_kwargs = {k: v for k, v in kwargs.items() if k not in _CONFIG_FIELDS}
    return retry_kwargs, client_kwargs


def create_retry_client(
    *,
    preset: Optional[str] = None,
    config: Optional[ClientConfig] = None,
    **kwargs: Any,
) -> RetryClient:
    """
    Create a retry-enabled sync HTTP client.

    Keyword arguments naming ClientConfig fields configure retries; every
    other keyword argument goes to ``httpx.Client``.

    Example:
        client = create_retry_client(
            preset="quick",
            base_url="https://api.example.com",
            timeout=5.0,
        )
        response = client.get("/data")
    """
    retry_kwargs, client_kwargs = _split_kwargs(kwargs)
    resolved = resolve_preset(preset, config, **retry_kwargs)
    return RetryClient(resolved.replace(client=httpx.Client(**client_kwargs)), owns_client=True)


def create_async_retry_client(
    *,
    preset: Optional[str] = None,
    config: Optional[ClientConfig] = None,
    **kwargs: Any,
) -> AsyncRetryClient:
    """Create a retry-enabled async HTTP client."""
    retry_kwargs, client_kwargs = _split_kwargs(kwargs)
    resolved = resolve_preset(preset, config, **retry_kwargs)
    return AsyncRetryClient(resolved.replace(client=httpx.AsyncClient(**client_kwargs)), owns_client=True)


def create_retry_transport(
    inner: Optional[httpx.BaseTransport] = None,
    *,
    preset: Optional[str] = None,
    config: Optional[ClientConfig] = None,
    **overrides: Any,
) -> SyncRetryTransport:
    """Wrap ``inner`` (default: ``httpx.HTTPTransport()``) with retries."""
    return SyncRetryTransport(inner or httpx.HTTPTransport(), resolve_preset(preset, config, **overrides))


def create_async_retry_transport(
    inner: Optional[httpx.AsyncBaseTransport] = None,
    *,
    preset: Optional[str] = None,
    config: Optional[ClientConfig] = None,
    **overrides: Any,
) -> RetryTransport:
    """Wrap ``inner`` (default: ``httpx.AsyncHTTPTransport()``) with retries."""
    return RetryTransport(inner or httpx.AsyncHTTPTransport(), resolve_preset(preset, config, **overrides))
