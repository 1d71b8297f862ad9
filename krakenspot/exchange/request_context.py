"""
Request Context - Deadline and cancellation token for a single call.

A context flows from request building through execution. It expires when
its deadline passes or when ``cancel()`` is called, whichever comes first.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional


class RequestContext:
    """Cancellation/deadline token shared by the build and execute stages."""

    def __init__(self, deadline: Optional[float] = None):
        # Deadline on the time.monotonic() clock; None means no deadline.
        self.deadline = deadline
        self._cancelled = asyncio.Event()

    @classmethod
    def background(cls) -> RequestContext:
        """A context that never expires unless cancelled."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float) -> RequestContext:
        return cls(deadline=time.monotonic() + float(seconds))

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    async def wait_cancelled(self) -> None:
        await self._cancelled.wait()

    def __repr__(self) -> str:
        return f"RequestContext(deadline={self.deadline!r}, cancelled={self.cancelled})"
