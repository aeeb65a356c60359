"""Clock abstraction used by every polling loop.

All suspension points (retry delays, settle delays, absolute deadlines) go
through a Clock so they can be driven by a virtual clock in tests.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Interface for reading monotonic time and suspending."""

    def monotonic(self) -> float:
        """Return a monotonic timestamp in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for the given number of seconds."""
        ...


class SystemClock:
    """Clock backed by the event loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
