"""
Tests for the retry transport wrappers.
"""
from unittest.mock import MagicMock

import httpx
import pytest

from fetch_retry_client.config import ClientConfig
from fetch_retry_client.context import CancelContext
from fetch_retry_client.errors import ContextCancelledError, MaxRetriesExceededError
from fetch_retry_client.transport import RetryTransport, SyncRetryTransport

from .conftest import AsyncScriptedTransport, ScriptedTransport, pool_state


FAST = ClientConfig(initial_backoff_seconds=0.001, max_backoff_seconds=0.004)


class TestSyncRetryTransport:
    """Tests for SyncRetryTransport class."""

    def test_creates_transport_with_default_config(self):
        """Should default to the standard retry config."""
        transport = SyncRetryTransport(ScriptedTransport(200))
        assert transport._config.max_retries == 5

    def test_applies_overrides(self):
        """Should apply keyword overrides."""
        transport = SyncRetryTransport(ScriptedTransport(200), FAST, max_retries=1)
        assert transport._config.max_retries == 1
        assert transport._config.initial_backoff_seconds == 0.001

    def test_adds_retries_to_plain_client(self):
        """Should retry through a plain httpx.Client."""
        inner = ScriptedTransport(404, 200)
        with httpx.Client(transport=SyncRetryTransport(inner, FAST)) as client:
            response = client.get("https://example.com/")
        assert response.status_code == 200
        assert inner.calls == 2

    def test_raises_max_retries_exceeded(self):
        """Should surface the max-retries error through the client."""
        inner = ScriptedTransport(403)
        with httpx.Client(transport=SyncRetryTransport(inner, FAST, max_retries=1)) as client:
            with pytest.raises(MaxRetriesExceededError):
                client.get("https://example.com/")
        assert inner.calls == 2

    def test_reads_cancel_context_from_extensions(self):
        """Should honour a CancelContext passed as a request extension."""
        inner = ScriptedTransport(200)
        ctx = CancelContext()
        ctx.cancel()
        with httpx.Client(transport=SyncRetryTransport(inner, FAST)) as client:
            with pytest.raises(ContextCancelledError):
                client.get("https://example.com/", extensions={"cancel_context": ctx})
        assert inner.calls == 0

    def test_rejects_wrong_cancel_context_type(self):
        """Should raise TypeError for a non-CancelContext extension."""
        transport = SyncRetryTransport(ScriptedTransport(200), FAST)
        request = httpx.Request("GET", "https://example.com/", extensions={"cancel_context": object()})
        with pytest.raises(TypeError):
            transport.handle_request(request)

    def test_close_passes_through(self):
        """Should close the inner transport."""
        inner = ScriptedTransport(200)
        SyncRetryTransport(inner).close()
        assert inner.closed is True

    def test_close_idle_connections_passes_through(self):
        """Should call the inner hook when present and ignore it otherwise."""
        inner = ScriptedTransport(200)
        SyncRetryTransport(inner).close_idle_connections()
        inner.close_idle_connections = MagicMock()
        SyncRetryTransport(inner).close_idle_connections()
        inner.close_idle_connections.assert_called_once_with()

    def test_close_idle_connections_reaches_http_pool(self, local_server):
        """Should close idle connections in a wrapped httpx.HTTPTransport."""
        inner = httpx.HTTPTransport()
        transport = SyncRetryTransport(inner, FAST)
        with httpx.Client(transport=transport) as client:
            client.get(local_server)
            assert pool_state(inner) == [(True, False)]
            transport.close_idle_connections()
            assert all(closed for _, closed in pool_state(inner))


class TestRetryTransport:
    """Tests for async RetryTransport class."""

    @pytest.mark.asyncio
    async def test_adds_retries_to_plain_client(self):
        """Should retry through a plain httpx.AsyncClient."""
        inner = AsyncScriptedTransport(httpx.ConnectError("refused"), 200)
        async with httpx.AsyncClient(transport=RetryTransport(inner, FAST)) as client:
            response = await client.get("https://example.com/")
        assert response.status_code == 200
        assert inner.calls == 2

    @pytest.mark.asyncio
    async def test_replays_body(self):
        """Should resend the same body on retry."""
        inner = AsyncScriptedTransport(409, 200)
        async with httpx.AsyncClient(transport=RetryTransport(inner, FAST)) as client:
            await client.post("https://example.com/", content=b"payload")
        assert inner.bodies == [b"payload", b"payload"]

    @pytest.mark.asyncio
    async def test_close_idle_connections_reaches_http_pool(self, local_server):
        """Should close idle connections in a wrapped httpx.AsyncHTTPTransport."""
        inner = httpx.AsyncHTTPTransport()
        transport = RetryTransport(inner, FAST)
        async with httpx.AsyncClient(transport=transport) as client:
            await client.get(local_server)
            assert pool_state(inner) == [(True, False)]
            await transport.close_idle_connections()
            assert all(closed for _, closed in pool_state(inner))

    @pytest.mark.asyncio
    async def test_aclose_passes_through(self):
        """Should close the inner transport."""
        inner = AsyncScriptedTransport(200)
        await RetryTransport(inner).aclose()
        assert inner.closed is True
