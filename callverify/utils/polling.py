"""Bounded polling and retry helpers shared by the call and report checks."""
import asyncio
import inspect
import logging
import random
import time
from typing import Any, Awaitable, Callable, Iterator, Optional, Tuple, Type, TypeVar

from ..exceptions import PollTimeoutError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S")

SleepFunc = Callable[[float], Awaitable[Any]]


class IntervalSchedule:
    """Delays between polling attempts.

    A factor of 1.0 gives a fixed interval; anything larger grows the delay
    geometrically up to ``max_interval``.
    """

    def __init__(
        self,
        interval: float,
        factor: float = 1.0,
        max_interval: Optional[float] = None,
        jitter: float = 0.0
    ):
        if interval < 0:
            raise ValueError("interval must not be negative")
        if factor < 1.0:
            raise ValueError("factor must be >= 1.0")
        self.interval = interval
        self.factor = factor
        self.max_interval = max_interval
        self.jitter = jitter

    @classmethod
    def fixed(cls, interval: float) -> "IntervalSchedule":
        """Same delay before every attempt."""
        return cls(interval)

    @classmethod
    def backoff(cls, initial: float, factor: float = 2.0, max_interval: float = 30.0,
                jitter: float = 0.0) -> "IntervalSchedule":
        """Exponentially growing delay, capped."""
        return cls(initial, factor=factor, max_interval=max_interval, jitter=jitter)

    def delay(self, attempt: int) -> float:
        """Delay to wait after the given zero-based attempt."""
        delay = self.interval * (self.factor ** attempt)
        if self.max_interval is not None:
            delay = min(delay, self.max_interval)
        if self.jitter:
            delay += random.uniform(0, delay * self.jitter)
        return delay

    def __iter__(self) -> Iterator[float]:
        attempt = 0
        while True:
            yield self.delay(attempt)
            attempt += 1

    def __repr__(self) -> str:
        return (f"IntervalSchedule(interval={self.interval}, factor={self.factor}, "
                f"max_interval={self.max_interval})")


async def poll(
    fetch: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    *,
    schedule: IntervalSchedule,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
    initial_delay: float = 0.0,
    retry_on: Tuple[Type[BaseException], ...] = (),
    description: str = "condition",
    sleep: SleepFunc = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic
) -> T:
    """Call ``fetch`` until ``is_done`` accepts its value.

    Returns the first accepted value without issuing another fetch. Errors
    listed in ``retry_on`` count as a failed attempt; any other error
    propagates. Raises PollTimeoutError once ``max_attempts`` or ``timeout``
    is used up.
    """
    if max_attempts is None and timeout is None:
        raise ValueError("poll() needs max_attempts or timeout")

    if initial_delay > 0:
        logger.debug(f"Waiting {initial_delay}s before polling {description}")
        await sleep(initial_delay)

    started = clock()
    attempts = 0
    last_value = None

    while True:
        attempts += 1
        try:
            value = await fetch()
        except retry_on as e:
            logger.warning(f"Polling {description} failed (attempt {attempts}): {e}")
        else:
            last_value = value
            if is_done(value):
                logger.debug(f"Polling {description} finished after {attempts} attempt(s)")
                return value

        if max_attempts is not None and attempts >= max_attempts:
            raise PollTimeoutError(
                f"Polling {description} timed out after {attempts} attempts",
                attempts=attempts,
                last_value=last_value
            )

        delay = schedule.delay(attempts - 1)
        if timeout is not None and (clock() - started) + delay > timeout:
            raise PollTimeoutError(
                f"Polling {description} timed out after {timeout}s ({attempts} attempts)",
                attempts=attempts,
                last_value=last_value
            )

        await sleep(delay)


async def retry_with_refresh(
    snapshot: Callable[[], Awaitable[S]],
    select: Callable[[S], Any],
    refresh: Callable[[], Awaitable[Any]],
    *,
    attempts: int,
    wait: float = 0.0,
    description: str = "item",
    sleep: SleepFunc = asyncio.sleep
) -> Any:
    """Select a value from a refreshable snapshot, refreshing up to ``attempts`` times.

    ``select`` may be a plain or async callable and returns None when nothing
    in the snapshot matches. The first scan is free; each retry waits
    ``wait`` seconds, refreshes, and scans again.
    """
    async def scan():
        result = select(await snapshot())
        if inspect.isawaitable(result):
            result = await result
        return result

    value = await scan()
    if value is not None:
        return value

    for attempt in range(1, attempts + 1):
        logger.info(f"{description} not found, retry {attempt}/{attempts} in {wait}s")
        if wait > 0:
            await sleep(wait)
        await refresh()
        value = await scan()
        if value is not None:
            return value

    raise RetryExhaustedError(f"{description} not found after {attempts} refreshes", attempts)
