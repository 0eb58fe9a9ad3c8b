"""
Retry transport wrappers for httpx
"""
from typing import Any, Optional

import httpx

from . import idle
from .config import ClientConfig, merge_config
from .context import CancelContext
from .executor import RetryExecutor
from .types import CANCEL_CONTEXT_EXTENSION


def _request_context(request: httpx.Request) -> Optional[CancelContext]:
    context = request.extensions.get(CANCEL_CONTEXT_EXTENSION)
    if context is not None and not isinstance(context, CancelContext):
        raise TypeError(
            f"{CANCEL_CONTEXT_EXTENSION} extension must be a CancelContext, got {type(context).__name__}"
        )
    return context


class SyncRetryTransport(httpx.BaseTransport):
    """
    Synchronous retry transport wrapper for httpx.

    Wraps another transport and runs every request through the retry
    executor, so a plain ``httpx.Client`` gains retries without changing
    call sites. A CancelContext can be attached per request through
    ``extensions={"cancel_context": ctx}``.

    Example:
        transport = SyncRetryTransport(httpx.HTTPTransport(), max_retries=3)
        client = httpx.Client(transport=transport)
    """

    def __init__(
        self,
        inner: httpx.BaseTransport,
        config: Optional[ClientConfig] = None,
        **overrides: Any,
    ) -> None:
        """
        Create a new SyncRetryTransport.

        Args:
            inner: The wrapped transport to delegate requests to
            config: Retry configuration (its ``client`` field is ignored)
            **overrides: ClientConfig fields applied on top of ``config``
        """
        self._inner = inner
        self._config = merge_config(config, **overrides)
        self._executor = RetryExecutor(self._config)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """Handle a sync HTTP request with retry logic"""
        return self._executor.execute_sync(self._inner.handle_request, request, _request_context(request))

    def close_idle_connections(self) -> None:
        idle.close_idle_connections(self._inner)

    def close(self) -> None:
        """Close the transport"""
        self._inner.close()


class RetryTransport(httpx.AsyncBaseTransport):
    """
    Async retry transport wrapper for httpx.

    Example:
        transport = RetryTransport(httpx.AsyncHTTPTransport(), max_retries=3)
        client = httpx.AsyncClient(transport=transport)
    """

    def __init__(
        self,
        inner: httpx.AsyncBaseTransport,
        config: Optional[ClientConfig] = None,
        **overrides: Any,
    ) -> None:
        self._inner = inner
        self._config = merge_config(config, **overrides)
        self._executor = RetryExecutor(self._config)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Handle an async HTTP request with retry logic"""
        return await self._executor.execute(
            self._inner.handle_async_request, request, _request_context(request)
        )

    async def close_idle_connections(self) -> None:
        await idle.aclose_idle_connections(self._inner)

    async def aclose(self) -> None:
        """Close the transport"""
        await self._inner.aclose()
