"""
Idle keep-alive connection cleanup for httpx clients and transports.

httpx has no public call for dropping idle pooled connections. The walk
below reads ``_transport`` and ``_mounts`` on ``httpx.Client`` and ``_pool``
on ``httpx.HTTPTransport`` (present from httpx 0.18 through 0.28); the pool
itself is walked through httpcore's public ``connections`` list.
"""
import inspect
import logging
from typing import Any, List

import httpx

logger = logging.getLogger("fetch_retry_client.idle")


def _client_transports(client: Any) -> List[Any]:
    """Default transport of an httpx client followed by its mounted ones."""
    transports = [client._transport]
    transports.extend(t for t in client._mounts.values() if t is not None)
    return transports


def _idle_connections(transport: Any) -> List[Any]:
    return [conn for conn in transport._pool.connections if conn.is_idle()]


def close_idle_connections(target: Any) -> bool:
    """
    Close idle keep-alive connections held by ``target``.

    ``target`` may be anything with its own ``close_idle_connections`` hook
    (a RetryClient, a retry transport, a custom sender), an ``httpx.Client``
    or an ``httpx.HTTPTransport``. Connections in use are left alone.

    Returns:
        False when nothing under ``target`` keeps a connection pool
    """
    closer = getattr(target, "close_idle_connections", None)
    if callable(closer):
        closer()
        return True
    if isinstance(target, httpx.Client):
        found = [close_idle_connections(t) for t in _client_transports(target)]
        return any(found)
    if isinstance(target, httpx.HTTPTransport):
        idle = _idle_connections(target)
        for conn in idle:
            conn.close()
        logger.debug(f"close_idle_connections: closed {len(idle)} idle connection(s)")
        return True
    return False


async def aclose_idle_connections(target: Any) -> bool:
    """Async counterpart of close_idle_connections for httpx.AsyncClient and AsyncHTTPTransport."""
    closer = getattr(target, "close_idle_connections", None)
    if callable(closer):
        result = closer()
        if inspect.isawaitable(result):
            await result
        return True
    if isinstance(target, httpx.AsyncClient):
        found = [await aclose_idle_connections(t) for t in _client_transports(target)]
        return any(found)
    if isinstance(target, httpx.AsyncHTTPTransport):
        idle = _idle_connections(target)
        for conn in idle:
            await conn.aclose()
        logger.debug(f"aclose_idle_connections: closed {len(idle)} idle connection(s)")
        return True
    return False
