"""
Request deadline and cancellation.

A :class:`RequestContext` travels with one transcription request.  Blocking
calls take their timeouts from :meth:`RequestContext.remaining` and polling
loops sleep through :meth:`RequestContext.sleep`, so cancelling the context
(or letting its deadline pass) makes the whole request fail promptly.
"""

import threading
import time
from typing import Optional

from .errors import Cancelled


class RequestContext:
    def __init__(self, timeout: Optional[float] = None):
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Cancel the request.  Safe to call from any thread."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or ``None`` when unbounded."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def timeout(self, default: Optional[float] = None) -> Optional[float]:
        """Timeout to hand to a blocking call: the smaller of ``default`` and the time left."""
        left = self.remaining()
        if left is None:
            return default
        if default is None:
            return left
        return min(left, default)

    def check(self) -> None:
        """Raise :class:`Cancelled` if the request should stop."""
        if self._cancelled.is_set():
            raise Cancelled("request cancelled")
        if self.expired:
            raise Cancelled("deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early on cancellation."""
        self.check()
        self._cancelled.wait(self.timeout(seconds))
        self.check()
