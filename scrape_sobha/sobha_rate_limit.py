"""
Adaptive rate controller for network-facing portal actions.

The delay grows geometrically while actions keep failing and decays back
toward the base delay as they succeed. One controller belongs to exactly
one scraping session.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional

FAILURE_GROWTH = 1.5
SUCCESS_DECAY = 0.9


class RateController:
    """
    Throttles successive actions with an adaptive backoff delay.

    Invariant: base_delay <= current_delay <= max_delay.
    """

    def __init__(
        self,
        base_delay: float,
        max_delay: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            base_delay: Minimum spacing between actions (seconds)
            max_delay: Ceiling for the adapted delay (seconds); raised to
                base_delay if configured lower
            clock: Monotonic clock
            sleep: Async sleeper
        """
        self.base_delay = float(base_delay)
        self.max_delay = max(float(max_delay), self.base_delay)
        self.current_delay = self.base_delay
        self.consecutive_failures = 0
        self.last_action_time: Optional[float] = None

        self._clock = clock
        self._sleep = sleep

    async def wait(self) -> float:
        """
        Suspend until current_delay has elapsed since the last action.

        Returns:
            Seconds actually waited
        """
        waited = 0.0
        if self.last_action_time is not None:
            elapsed = self._clock() - self.last_action_time
            if elapsed < self.current_delay:
                waited = self.current_delay - elapsed
                await self._sleep(waited)

        self.last_action_time = self._clock()
        return waited

    def on_success(self):
        """Reset the failure streak and decay the delay toward base."""
        self.consecutive_failures = 0
        self.current_delay = max(self.base_delay, self.current_delay * SUCCESS_DECAY)

    def on_failure(self):
        """Extend the failure streak and grow the delay."""
        self.consecutive_failures += 1
        self.current_delay = min(
            self.max_delay,
            self.base_delay * FAILURE_GROWTH ** self.consecutive_failures,
        )

    def state(self) -> Dict[str, float]:
        return {
            "base_delay": self.base_delay,
            "current_delay": round(self.current_delay, 3),
            "max_delay": self.max_delay,
            "consecutive_failures": self.consecutive_failures,
        }
