"""
Type definitions for fetch_retry_client
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import httpx


# Retry predicate: (response, error) -> retry?
RetryCondition = Callable[[Optional[httpx.Response], Optional[BaseException]], bool]

# Exceptions from the underlying send that count as transport errors
TRANSPORT_ERRORS = (httpx.HTTPError, OSError)

# Body regeneration function installed on a request
BodyFactory = Callable[[], Union[bytes, httpx.SyncByteStream, httpx.AsyncByteStream]]

SyncSend = Callable[[httpx.Request], httpx.Response]
AsyncSend = Callable[[httpx.Request], Awaitable[httpx.Response]]

# Request extension keys
REPLAY_BODY_EXTENSION = "replay_body"
CANCEL_CONTEXT_EXTENSION = "cancel_context"


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single attempt"""

    attempt: int
    """Attempt index (0 for the first attempt)"""

    response: Optional[httpx.Response] = None
    """Response received, if the round trip completed"""

    error: Optional[BaseException] = None
    """Transport error raised by the send, if any"""

    @property
    def status_code(self) -> Optional[int]:
        return self.response.status_code if self.response is not None else None


# Hook called before each backoff wait: (outcome, delay_seconds)
RetryHook = Callable[[AttemptOutcome, float], None]


class SyncSender(Protocol):
    """Anything that can build and send an httpx request synchronously.

    Satisfied by ``httpx.Client`` and by ``RetryClient``.
    """

    def build_request(self, method: str, url: Any, **kwargs: Any) -> httpx.Request:
        ...

    def send(self, request: httpx.Request, **kwargs: Any) -> httpx.Response:
        ...


class AsyncSender(Protocol):
    """Async counterpart of SyncSender.

    Satisfied by ``httpx.AsyncClient`` and by ``AsyncRetryClient``.
    """

    def build_request(self, method: str, url: Any, **kwargs: Any) -> httpx.Request:
        ...

    async def send(self, request: httpx.Request, **kwargs: Any) -> httpx.Response:
        ...
