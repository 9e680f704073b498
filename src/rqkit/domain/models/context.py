"""Cancellable execution context shared by the transport and the retry engine"""

import threading
import time
from typing import Optional

from rqkit.domain.errors import DeadlineExceeded, ExecutionCancelled


class ExecutionContext:
    """Cancellation signal with an optional deadline

    A context is cancelled either explicitly via ``cancel()`` or implicitly
    once its deadline passes. Waiting is done on a ``threading.Event`` so that
    cancellation wakes sleepers immediately.
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize context

        Args:
            timeout: Seconds until the context expires (None = no deadline)
        """
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[ExecutionCancelled] = None
        self.deadline: Optional[float] = None
        if timeout is not None:
            self.deadline = time.monotonic() + max(timeout, 0.0)

    def cancel(self, cause: object = None) -> None:
        """Cancel the context; the first cause wins"""
        with self._lock:
            if self._error is None:
                message = f"execution cancelled: {cause}" if cause is not None else "execution cancelled"
                self._error = ExecutionCancelled(message, cause=cause)
        self._event.set()

    @property
    def error(self) -> Optional[ExecutionCancelled]:
        """Cancellation error, or None while the context is live"""
        if self._error is None and self.deadline is not None and time.monotonic() >= self.deadline:
            with self._lock:
                if self._error is None:
                    self._error = DeadlineExceeded()
            self._event.set()
        return self._error

    @property
    def cancelled(self) -> bool:
        return self.error is not None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline (None = unbounded)"""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def sleep(self, seconds: float) -> None:
        """Wait for ``seconds`` or until the context is cancelled

        Raises:
            ExecutionCancelled: If the context is cancelled before the wait ends
        """
        error = self.error
        if error is not None:
            raise error

        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._event.wait(remaining)
            # deadline reached while waiting
            raise self.error or DeadlineExceeded()

        if self._event.wait(seconds):
            raise self.error or ExecutionCancelled()
