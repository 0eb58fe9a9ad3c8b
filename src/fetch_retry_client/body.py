"""
Request body capture and replay.

httpx request streams built from generators or file objects can be read only
once. Before a request enters the retry loop its body is captured in memory,
and before every retry a fresh stream over the same bytes is installed on
the request. The regeneration function is stored in
``request.extensions["replay_body"]``; a caller that already provides one
there keeps full control over what gets replayed.
"""
import logging
from typing import Optional

import httpx

from .errors import BodyBufferError, BodyReplayError
from .types import REPLAY_BODY_EXTENSION, BodyFactory

logger = logging.getLogger("fetch_retry_client.body")


def _factory_for(content: bytes) -> BodyFactory:
    def replay() -> httpx.ByteStream:
        return httpx.ByteStream(content)

    return replay


class BodyReplayBuffer:
    """Replays a request body across attempts."""

    def __init__(self, factory: Optional[BodyFactory] = None) -> None:
        self._factory = factory

    @property
    def replayable(self) -> bool:
        return self._factory is not None

    @classmethod
    def capture(cls, request: httpx.Request) -> "BodyReplayBuffer":
        """
        Capture the body of ``request`` for replay (sync).

        Mutates ``request``: installs the regeneration function and a fresh
        readable stream for the first attempt.

        Raises:
            BodyBufferError: The body stream could not be read
        """
        existing = cls._existing(request)
        if existing is not None:
            return existing

        content = cls._in_memory(request)
        if content is None:
            if not isinstance(request.stream, httpx.SyncByteStream):
                raise BodyBufferError(
                    "request body is an async stream; use an async client to send it"
                )
            try:
                content = request.read()
            except Exception as e:
                raise BodyBufferError(f"failed to buffer request body: {e}") from e
            logger.debug(f"BodyReplayBuffer.capture: buffered {len(content)} bytes for {request.url}")

        return cls._install(request, content)

    @classmethod
    async def acapture(cls, request: httpx.Request) -> "BodyReplayBuffer":
        """Async version of capture(); reads async streams without blocking."""
        existing = cls._existing(request)
        if existing is not None:
            return existing

        content = cls._in_memory(request)
        if content is None:
            try:
                if isinstance(request.stream, httpx.AsyncByteStream):
                    content = await request.aread()
                else:
                    content = request.read()
            except Exception as e:
                raise BodyBufferError(f"failed to buffer request body: {e}") from e
            logger.debug(f"BodyReplayBuffer.acapture: buffered {len(content)} bytes for {request.url}")

        return cls._install(request, content)

    @classmethod
    def _existing(cls, request: httpx.Request) -> Optional["BodyReplayBuffer"]:
        factory = request.extensions.get(REPLAY_BODY_EXTENSION)
        if factory is None:
            return None
        if not callable(factory):
            raise BodyBufferError(f"{REPLAY_BODY_EXTENSION} extension must be callable")
        return cls(factory)

    @staticmethod
    def _in_memory(request: httpx.Request) -> Optional[bytes]:
        try:
            return request.content
        except httpx.RequestNotRead:
            return None

    @classmethod
    def _install(cls, request: httpx.Request, content: bytes) -> "BodyReplayBuffer":
        if not content:
            return cls()
        factory = _factory_for(content)
        request.extensions[REPLAY_BODY_EXTENSION] = factory
        request.stream = factory()
        return cls(factory)

    def rearm(self, request: httpx.Request) -> None:
        """
        Install a fresh copy of the body on ``request``.

        Raises:
            BodyReplayError: The regeneration function failed
        """
        if self._factory is None:
            return
        try:
            body = self._factory()
        except Exception as e:
            raise BodyReplayError(f"failed to regenerate request body: {e}") from e
        if isinstance(body, (bytes, bytearray)):
            body = httpx.ByteStream(bytes(body))
        elif not isinstance(body, (httpx.SyncByteStream, httpx.AsyncByteStream)):
            raise BodyReplayError(
                f"{REPLAY_BODY_EXTENSION} returned {type(body).__name__}, expected bytes or a byte stream"
            )
        request.stream = body
