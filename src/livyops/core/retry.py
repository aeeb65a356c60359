"""Bounded retry with a fixed delay.

Every polling operation against Livy or the YARN resource manager goes
through RetryPolicy. Attempts are strictly sequential; the only suspension
points are the delays between attempts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from livyops.core.clock import Clock, SystemClock
from livyops.core.errors import ServiceExhausted, TransientTransportError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry an operation until it yields a value or the budget runs out.

    Attributes:
        retries_max: Maximum number of attempts (>= 1).
        delay_seconds: Pause between two attempts.
        clock: Clock used for the pauses.
    """

    retries_max: int = 3
    delay_seconds: float = 10
    clock: Clock = field(default_factory=SystemClock)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T | None]],
        *,
        what: str = "complete the operation",
    ) -> T:
        """
        Run ``operation`` until it returns something other than None.

        A TransientTransportError counts as "not yet". Any other exception,
        including cancellation, propagates immediately.

        Args:
            operation: Async callable returning a value, or None to retry.
            what: Short description used in log and error messages.

        Returns:
            The first non-None value produced by ``operation``.

        Raises:
            ServiceExhausted: If ``retries_max`` attempts produced nothing.
        """
        if self.retries_max < 1:
            raise ValueError("retries_max must be >= 1")

        attempts = 0
        last_error: Exception | None = None

        while attempts < self.retries_max:
            attempts += 1
            try:
                result = await operation()
            except TransientTransportError as exc:
                LOGGER.debug(
                    "Attempt %d/%d to %s failed: %s",
                    attempts,
                    self.retries_max,
                    what,
                    exc,
                )
                last_error = exc
                result = None

            if result is not None:
                return result

            if attempts < self.retries_max:
                await self.clock.sleep(self.delay_seconds)

        raise ServiceExhausted(what, attempts, last_error)
