"""
Error types for fetch_retry_client.
"""
from typing import Optional

import httpx


class RetryClientError(Exception):
    """Base class for errors raised by the retry engine."""


class BodyBufferError(RetryClientError):
    """The request body could not be captured for replay."""


class BodyReplayError(RetryClientError):
    """The request body could not be regenerated before a retry."""


class CancellationError(RetryClientError):
    """The call's cancel context fired.

    ``phase`` records the checkpoint that observed it: ``before_attempt``,
    ``after_attempt`` or ``backoff``.
    """

    def __init__(self, message: str, phase: Optional[str] = None) -> None:
        super().__init__(message)
        self.phase = phase


class ContextCancelledError(CancellationError):
    """The cancel context was cancelled explicitly."""

    def __init__(self, phase: Optional[str] = None) -> None:
        super().__init__("context cancelled", phase)


class DeadlineExceededError(CancellationError, TimeoutError):
    """The cancel context's deadline passed."""

    def __init__(self, phase: Optional[str] = None) -> None:
        super().__init__("context deadline exceeded", phase)


class MaxRetriesExceededError(RetryClientError):
    """Every attempt in the budget asked for a retry.

    ``response`` is the last response observed (already closed, status and
    headers stay readable) or ``None`` if the last attempt failed at transport
    level, in which case ``last_error`` holds that failure.
    """

    def __init__(
        self,
        attempts: int,
        response: Optional[httpx.Response] = None,
        last_error: Optional[BaseException] = None,
    ) -> None:
        detail = f"HTTP {response.status_code}" if response is not None else repr(last_error)
        super().__init__(f"max retries exceeded after {attempts} attempts (last: {detail})")
        self.attempts = attempts
        self.response = response
        self.last_error = last_error
