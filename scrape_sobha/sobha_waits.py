"""
Bounded polling primitive shared by every wait in the pipeline.

Each call site supplies its own check, timeout and interval; nothing here
blocks without a bound.
"""

import asyncio
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from runner.logging_setup import get_logger

module_logger = get_logger("sobha_waits")


@dataclass(frozen=True)
class PollResult:
    """Outcome of one poll_until() call."""

    satisfied: bool
    attempts: int
    elapsed: float
    value: Any = None

    def __bool__(self) -> bool:
        return self.satisfied


async def poll_until(
    check: Callable[[], Awaitable[Any]],
    *,
    timeout: float,
    interval: float,
    max_attempts: Optional[int] = None,
    description: str = "condition",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
    logger=None,
) -> PollResult:
    """
    Evaluate check() until it returns a truthy value or the bound is hit.

    The bound is whichever comes first: `timeout` seconds of wall time or
    `max_attempts` evaluations (defaults to enough attempts to cover the
    timeout at the given interval). Exceptions raised by check() count as
    an unsatisfied attempt; in-page scripts routinely fail while the page
    is re-rendering.

    Args:
        check: Async callable returning a truthy value when satisfied
        timeout: Wall-clock bound in seconds
        interval: Pause between attempts in seconds
        max_attempts: Optional cap on evaluations
        description: Label used in debug logging
        sleep: Async sleeper (injectable for tests)
        clock: Monotonic clock (injectable for tests)
        logger: Session logger for attempt diagnostics (console logger if None)

    Returns:
        PollResult with the last value observed
    """
    log = logger or module_logger
    if max_attempts is None:
        max_attempts = max(1, math.ceil(timeout / interval) + 1) if interval > 0 else 1

    start = clock()
    attempts = 0
    value = None

    while True:
        attempts += 1
        try:
            value = await check()
        except Exception as e:
            log.debug(f"Poll '{description}' attempt {attempts} raised: {e}")
            value = None

        if value:
            return PollResult(True, attempts, clock() - start, value)

        if attempts >= max_attempts or clock() - start >= timeout:
            break

        await sleep(interval)

    log.debug(f"Poll '{description}' gave up after {attempts} attempts")
    return PollResult(False, attempts, clock() - start, value)
