"""
Outbound request throttle for third-party APIs (TMDB).

Calls are spaced to a fixed maximum rate but are not serialized: each call
reserves the next free slot, waits for it and then runs concurrently with
whatever started before it. Feeding a whole batch through `process_all`
therefore finishes in roughly len(items) / rate seconds instead of the sum of
every call's latency.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class RequestThrottle:
    """Spaces call start times `1 / requests_per_second` apart."""

    def __init__(
        self,
        requests_per_second: float = 4.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        self.requests_per_second = requests_per_second
        self.interval = 1.0 / requests_per_second
        self._clock = clock
        self._sleep = sleep
        self._next_slot = 0.0

    def _reserve_delay(self) -> float:
        # No await between read and write, so concurrent callers cannot share a slot
        now = self._clock()
        slot = max(now, self._next_slot)
        self._next_slot = slot + self.interval
        return slot - now

    async def execute(self, fn: Callable[..., Awaitable[R]], *args, **kwargs) -> R:
        delay = self._reserve_delay()
        if delay > 0:
            await self._sleep(delay)
        return await fn(*args, **kwargs)


async def process_all(
    items: Iterable[T],
    processor: Callable[[T, RequestThrottle], Awaitable[R]],
    throttle: RequestThrottle | None = None,
) -> list[R]:
    """
    Run `processor` for every item at once; the processor is expected to route
    its outbound calls through the shared throttle.
    """
    throttle = throttle or RequestThrottle()
    return list(await asyncio.gather(*(processor(item, throttle) for item in items)))
