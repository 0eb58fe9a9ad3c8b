"""
Main retry executor implementation
"""
import asyncio
import logging
import time
from typing import Optional

import httpx

from .body import BodyReplayBuffer
from .config import ClientConfig, merge_config, next_backoff
from .context import CancelContext
from .errors import MaxRetriesExceededError, RetryClientError
from .types import TRANSPORT_ERRORS, AsyncSend, AttemptOutcome, SyncSend

logger = logging.getLogger("fetch_retry_client.executor")


def _clamp_timeout(request: httpx.Request, remaining: float) -> None:
    """Shrink the request's timeout extension so it ends by the deadline."""
    current = request.extensions.get("timeout") or {}
    clamped = {}
    for key in ("connect", "read", "write", "pool"):
        value = current.get(key)
        clamped[key] = remaining if value is None else min(value, remaining)
    request.extensions["timeout"] = clamped


class RetryExecutor:
    """
    Retry Executor

    Drives one request through the attempt loop:
    - Body capture before the first attempt, replay before every retry
    - Retry decision through the configured retry condition
    - Backoff between attempts, capped at max_backoff_seconds
    - Cancellation checks before, after and between attempts

    The executor holds no per-call state, so one instance can serve
    concurrent calls as long as each call sends its own request object.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """
        Create a new RetryExecutor.

        Args:
            config: Retry configuration
        """
        self._config = merge_config(config)

    @property
    def config(self) -> ClientConfig:
        """Get the current configuration."""
        return self._config

    def _should_retry(self, outcome: AttemptOutcome) -> bool:
        return bool(self._config.retry_condition(outcome.response, outcome.error))

    def _notify(self, outcome: AttemptOutcome, delay: float) -> None:
        if self._config.on_retry is not None:
            self._config.on_retry(outcome, delay)

    def _exhausted(self, request: httpx.Request, last: AttemptOutcome) -> MaxRetriesExceededError:
        attempts = last.attempt + 1
        logger.warning(
            f"RetryExecutor: giving up on {request.method} {request.url} after {attempts} attempts "
            f"(last status={last.status_code}, last error={last.error!r})"
        )
        return MaxRetriesExceededError(attempts, last.response, last.error)

    def execute_sync(
        self,
        send: SyncSend,
        request: httpx.Request,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """
        Send ``request`` with retry logic.

        Args:
            send: Callable performing one attempt (e.g. ``httpx.Client.send``)
            request: Request to send; its body stream is replaced between attempts
            context: Cancellation context for this call

        Returns:
            The response of the final attempt, stream untouched

        Raises:
            CancellationError: The context fired
            BodyBufferError: The body could not be captured
            BodyReplayError: The body could not be regenerated
            MaxRetriesExceededError: Every attempt asked for a retry
            Exception: A transport error the retry condition declined to retry
        """
        ctx = context if context is not None else CancelContext()
        max_retries = self._config.max_retries

        error = ctx.err("before_attempt")
        if error is not None:
            logger.debug(f"RetryExecutor: {request.method} {request.url} cancelled before first attempt")
            raise error

        body = BodyReplayBuffer.capture(request)
        delay = self._config.initial_backoff_seconds
        last: Optional[AttemptOutcome] = None

        for attempt in range(max_retries + 1):
            error = ctx.err("before_attempt")
            if error is not None:
                raise error

            if attempt > 0:
                body.rearm(request)

            remaining = ctx.remaining()
            if remaining is not None:
                _clamp_timeout(request, remaining)

            logger.debug(f"RetryExecutor: attempt {attempt + 1}/{max_retries + 1} {request.method} {request.url}")
            start = time.monotonic()
            try:
                outcome = AttemptOutcome(attempt, response=send(request))
            except RetryClientError:
                raise
            except TRANSPORT_ERRORS as e:
                outcome = AttemptOutcome(attempt, error=e)
            duration = time.monotonic() - start

            error = ctx.err("after_attempt")
            if error is not None:
                if outcome.response is not None:
                    outcome.response.close()
                logger.warning(f"RetryExecutor: {request.method} {request.url} cancelled during attempt {attempt + 1}")
                raise error from outcome.error

            if not self._should_retry(outcome):
                logger.debug(
                    f"RetryExecutor: final outcome after {attempt + 1} attempts in {duration:.3f}s "
                    f"(status={outcome.status_code}, error={outcome.error!r})"
                )
                if outcome.error is not None:
                    raise outcome.error
                return outcome.response

            last = outcome
            if outcome.response is not None:
                outcome.response.close()
            if attempt >= max_retries:
                break

            logger.info(
                f"RetryExecutor: retrying {request.method} {request.url} in {delay:.3f}s "
                f"(attempt {attempt + 1}, status={outcome.status_code}, error={outcome.error!r})"
            )
            self._notify(outcome, delay)
            if ctx.wait(delay):
                logger.warning(f"RetryExecutor: {request.method} {request.url} cancelled during backoff")
                raise ctx.err("backoff")
            delay = next_backoff(delay, self._config.backoff_multiplier, self._config.max_backoff_seconds)

        raise self._exhausted(request, last) from last.error

    async def execute(
        self,
        send: AsyncSend,
        request: httpx.Request,
        context: Optional[CancelContext] = None,
    ) -> httpx.Response:
        """
        Send ``request`` with retry logic (async).

        Same contract as execute_sync(). An in-flight attempt is abandoned as
        soon as the context fires, and backoff waits suspend only this task.
        """
        ctx = context if context is not None else CancelContext()
        max_retries = self._config.max_retries

        error = ctx.err("before_attempt")
        if error is not None:
            logger.debug(f"RetryExecutor: {request.method} {request.url} cancelled before first attempt")
            raise error

        body = await BodyReplayBuffer.acapture(request)
        delay = self._config.initial_backoff_seconds
        last: Optional[AttemptOutcome] = None

        for attempt in range(max_retries + 1):
            error = ctx.err("before_attempt")
            if error is not None:
                raise error

            if attempt > 0:
                body.rearm(request)

            logger.debug(f"RetryExecutor: attempt {attempt + 1}/{max_retries + 1} {request.method} {request.url}")
            start = time.monotonic()
            try:
                outcome = AttemptOutcome(attempt, response=await self._attempt(send, request, ctx))
            except RetryClientError:
                raise
            except TRANSPORT_ERRORS as e:
                outcome = AttemptOutcome(attempt, error=e)
            duration = time.monotonic() - start

            error = ctx.err("after_attempt")
            if error is not None:
                if outcome.response is not None:
                    await outcome.response.aclose()
                logger.warning(f"RetryExecutor: {request.method} {request.url} cancelled during attempt {attempt + 1}")
                raise error from outcome.error

            if not self._should_retry(outcome):
                logger.debug(
                    f"RetryExecutor: final outcome after {attempt + 1} attempts in {duration:.3f}s "
                    f"(status={outcome.status_code}, error={outcome.error!r})"
                )
                if outcome.error is not None:
                    raise outcome.error
                return outcome.response

            last = outcome
            if outcome.response is not None:
                await outcome.response.aclose()
            if attempt >= max_retries:
                break

            logger.info(
                f"RetryExecutor: retrying {request.method} {request.url} in {delay:.3f}s "
                f"(attempt {attempt + 1}, status={outcome.status_code}, error={outcome.error!r})"
            )
            self._notify(outcome, delay)
            if await ctx.async_wait(delay):
                logger.warning(f"RetryExecutor: {request.method} {request.url} cancelled during backoff")
                raise ctx.err("backoff")
            delay = next_backoff(delay, self._config.backoff_multiplier, self._config.max_backoff_seconds)

        raise self._exhausted(request, last) from last.error

    async def _attempt(
        self,
        send: AsyncSend,
        request: httpx.Request,
        ctx: CancelContext,
    ) -> httpx.Response:
        """Run one send, abandoning it if the context fires first."""
        sending = asyncio.ensure_future(send(request))
        watcher = asyncio.ensure_future(ctx.async_wait())
        try:
            await asyncio.wait({sending, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sending, watcher):
                if not task.done():
                    task.cancel()
            # Let cancelled tasks unwind before the loop moves on
            await asyncio.gather(sending, watcher, return_exceptions=True)

        if not sending.cancelled():
            return sending.result()
        error = ctx.err("after_attempt")
        if error is None:
            raise asyncio.CancelledError()
        raise error
