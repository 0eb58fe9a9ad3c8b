"""
Tests for idle connection cleanup helpers.
"""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from fetch_retry_client.idle import aclose_idle_connections, close_idle_connections

from .conftest import pool_state


class TestCloseIdleConnections:
    """Tests for close_idle_connections."""

    def test_prefers_own_hook(self):
        """Should call the target's own hook when it has one."""
        target = MagicMock(spec=["close_idle_connections"])
        assert close_idle_connections(target) is True
        target.close_idle_connections.assert_called_once_with()

    def test_returns_false_without_pool(self):
        """Should report targets that keep no pool."""
        assert close_idle_connections(object()) is False
        with httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200))) as client:
            assert close_idle_connections(client) is False

    def test_closes_only_idle_connections(self, local_server):
        """Should close idle pooled connections of a client."""
        transport = httpx.HTTPTransport()
        with httpx.Client(transport=transport) as client:
            client.get(local_server)
            assert close_idle_connections(client) is True
            assert pool_state(transport) and all(closed for _, closed in pool_state(transport))


class TestAcloseIdleConnections:
    """Tests for aclose_idle_connections."""

    @pytest.mark.asyncio
    async def test_awaits_async_hook(self):
        """Should await an async hook."""
        target = MagicMock(spec=["close_idle_connections"])
        target.close_idle_connections = AsyncMock()
        assert await aclose_idle_connections(target) is True
        target.close_idle_connections.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_walks_async_client_mounts(self, local_server):
        """Should close idle connections in mounted async transports."""
        mounted = httpx.AsyncHTTPTransport()
        async with httpx.AsyncClient(mounts={"http://127.0.0.1": mounted}, trust_env=False) as client:
            await client.get(local_server)
            assert await aclose_idle_connections(client) is True
            assert pool_state(mounted) and all(closed for _, closed in pool_state(mounted))
