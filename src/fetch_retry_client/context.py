"""
Cancellation context for retried calls.

A CancelContext is the caller's signal to stop a call: it fires either when
``cancel()`` is called (from any thread) or when its deadline passes. The
retry engine checks it before the first attempt, after every attempt and
while waiting out a backoff.

Example:
    ctx = CancelContext.with_timeout(5.0)
    response = client.get("https://api.example.com/data", context=ctx)
"""
import asyncio
import threading
import time
from typing import Callable, Optional

from .errors import CancellationError, ContextCancelledError, DeadlineExceededError


_CANCELLED = "cancelled"
_DEADLINE = "deadline"


class CancelContext:
    """Thread-safe cancellation signal with an optional deadline."""

    def __init__(self, deadline: Optional[float] = None) -> None:
        """
        Create a new CancelContext.

        Args:
            deadline: Absolute ``time.monotonic()`` value after which the
                context counts as expired. ``None`` means no deadline.
        """
        self._deadline = deadline
        self._reason: Optional[str] = None
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._waiters: list[Callable[[], None]] = []

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelContext":
        """Create a context that expires ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self) -> None:
        """Cancel the context. Calling it again has no effect."""
        self._fire(_CANCELLED)

    def _expire(self) -> None:
        self._fire(_DEADLINE)

    def _fire(self, reason: str) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            self._done.set()
            waiters, self._waiters = self._waiters, []
        for wake in waiters:
            wake()

    def done(self) -> bool:
        """Whether the context has fired."""
        return self.err() is not None

    def err(self, phase: Optional[str] = None) -> Optional[CancellationError]:
        """
        Return the cancellation error if the context has fired, else None.

        Args:
            phase: Checkpoint name recorded on the returned error
        """
        if self._reason is None and self._deadline is not None:
            if time.monotonic() >= self._deadline:
                self._expire()
        if self._reason == _CANCELLED:
            return ContextCancelledError(phase)
        if self._reason == _DEADLINE:
            return DeadlineExceededError(phase)
        return None

    def _bounded(self, seconds: Optional[float]) -> tuple[Optional[float], bool]:
        """Clamp a wait to the deadline; report whether the deadline bounds it."""
        remaining = self.remaining()
        if remaining is None:
            return seconds, False
        if seconds is None or remaining <= seconds:
            return remaining, True
        return seconds, False

    def wait(self, seconds: Optional[float] = None) -> bool:
        """
        Block until the context fires or ``seconds`` elapse.

        Args:
            seconds: Maximum wait, ``None`` to wait until the context fires

        Returns:
            True if the context fired, False if the time elapsed first
        """
        if self.err() is not None:
            return True
        timeout, hits_deadline = self._bounded(seconds)
        if self._done.wait(timeout):
            return True
        if hits_deadline:
            self._expire()
            return True
        return False

    async def async_wait(self, seconds: Optional[float] = None) -> bool:
        """
        Async version of wait(); suspends only the calling task.

        Args:
            seconds: Maximum wait, ``None`` to wait until the context fires

        Returns:
            True if the context fired, False if the time elapsed first
        """
        if self.err() is not None:
            return True

        loop = asyncio.get_running_loop()
        fired = loop.create_future()

        def _resolve() -> None:
            if not fired.done():
                fired.set_result(None)

        def _wake() -> None:
            loop.call_soon_threadsafe(_resolve)

        with self._lock:
            registered = self._reason is None
            if registered:
                self._waiters.append(_wake)
        if not registered:
            return True

        timeout, hits_deadline = self._bounded(seconds)
        try:
            await asyncio.wait({fired}, timeout=timeout)
        finally:
            with self._lock:
                if _wake in self._waiters:
                    self._waiters.remove(_wake)
            if not fired.done():
                fired.cancel()

        if self._done.is_set():
            return True
        if hits_deadline:
            self._expire()
            return True
        return False

    def __repr__(self) -> str:
        return f"CancelContext(deadline={self._deadline!r}, reason={self._reason!r})"
