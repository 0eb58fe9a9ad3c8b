"""
Shared fixtures for fetch_retry_client tests.
"""
import asyncio
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Union

import httpx
import pytest

from fetch_retry_client.config import ClientConfig


Step = Union[int, httpx.Response, Exception]


class TrackingStream(httpx.SyncByteStream, httpx.AsyncByteStream):
    """Response stream that records whether it was closed."""

    def __init__(self, content: bytes = b"") -> None:
        self.content = content
        self.closed = False

    def __iter__(self):
        yield self.content

    async def __aiter__(self):
        yield self.content

    def close(self) -> None:
        self.closed = True

    async def aclose(self) -> None:
        self.closed = True


def _respond(step: Step, streams: list) -> httpx.Response:
    if isinstance(step, Exception):
        raise step
    if isinstance(step, httpx.Response):
        return step
    stream = TrackingStream(f"status {step}".encode())
    streams.append(stream)
    return httpx.Response(status_code=step, stream=stream)


class ScriptedTransport(httpx.BaseTransport):
    """Mock sync transport that plays back a script of statuses/errors.

    The last step repeats once the script runs out. Request bodies are read
    straight from ``request.stream`` so a consumed stream fails loudly.
    """

    def __init__(self, *steps: Step, delay: float = 0.0) -> None:
        self.steps = list(steps) or [200]
        self.delay = delay
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self.streams: list[TrackingStream] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.requests)

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(b"".join(request.stream))
        if self.delay:
            time.sleep(self.delay)
        step = self.steps[min(len(self.requests) - 1, len(self.steps) - 1)]
        return _respond(step, self.streams)

    def close(self) -> None:
        self.closed = True


class AsyncScriptedTransport(httpx.AsyncBaseTransport):
    """Mock async transport that plays back a script of statuses/errors."""

    def __init__(self, *steps: Step, delay: float = 0.0) -> None:
        self.steps = list(steps) or [200]
        self.delay = delay
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []
        self.streams: list[TrackingStream] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(b"".join([chunk async for chunk in request.stream]))
        if self.delay:
            await asyncio.sleep(self.delay)
        step = self.steps[min(len(self.requests) - 1, len(self.steps) - 1)]
        return _respond(step, self.streams)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fast_config() -> ClientConfig:
    """Config with tiny backoffs so retry tests stay fast."""
    return ClientConfig(
        max_retries=5,
        initial_backoff_seconds=0.001,
        backoff_multiplier=2.0,
        max_backoff_seconds=0.004,
    )


@pytest.fixture
def sample_request() -> httpx.Request:
    """GET request without a body."""
    return httpx.Request("GET", "https://api.example.com/items")


class KeepAliveHandler(BaseHTTPRequestHandler):
    """HTTP/1.1 handler that keeps connections open between requests."""

    protocol_version = "HTTP/1.1"

    def do_GET(self):
        body = b"ok"
        self.send_response(200)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def local_server():
    """Base URL of a local keep-alive HTTP server."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), KeepAliveHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def pool_state(transport) -> list:
    """(idle, closed) flags for each connection in a pooled httpx transport."""
    return [(conn.is_idle(), conn.is_closed()) for conn in transport._pool.connections]
