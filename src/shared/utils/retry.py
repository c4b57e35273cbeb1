# /src/shared/utils/retry.py
"""
Async bounded retry.

- async def bounded_retry(fn, *, attempts, delay, backoff=1.0, max_delay=None,
                          attempt_timeout=None, retry_on=(Exception,),
                          should_continue=None, sleep=asyncio.sleep)

Fixed (or capped exponential) delay between attempts, optional per-attempt
timeout, and a should_continue predicate so a superseded caller can stop
the loop. Raises RetriesExhausted / RetryCancelled.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, Optional, Tuple, Type, TypeVar

ExcTuple = Tuple[Type[BaseException], ...]
T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class RetriesExhausted(Exception):
    """Every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        super().__init__(f"Gave up after {attempts} attempts")
        self.attempts = attempts
        self.last_error = last_error


class RetryCancelled(Exception):
    """should_continue() turned false before the next attempt."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Retry loop stopped after {attempts} attempts")
        self.attempts = attempts


async def bounded_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    delay: float,
    backoff: float = 1.0,
    max_delay: Optional[float] = None,
    attempt_timeout: Optional[float] = None,
    retry_on: Iterable[Type[BaseException]] = (Exception,),
    should_continue: Optional[Callable[[], bool]] = None,
    sleep: Sleep = asyncio.sleep,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """
    Run ``fn`` up to ``attempts`` times.

    A per-attempt timeout counts as a retryable failure. Errors outside
    ``retry_on`` propagate immediately. ``should_continue`` is checked
    before every attempt after the first; once false no further attempt
    is scheduled.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    exc_types: ExcTuple = tuple(retry_on) + (asyncio.TimeoutError,)
    wait = delay
    last_exc: BaseException | None = None

    for i in range(attempts):
        if i > 0 and should_continue is not None and not should_continue():
            raise RetryCancelled(i)
        try:
            if attempt_timeout is None:
                return await fn()
            return await asyncio.wait_for(fn(), timeout=attempt_timeout)
        except exc_types as e:
            last_exc = e
            if i == attempts - 1:
                break
            if on_retry is not None:
                on_retry(i + 1, e)
            await sleep(wait)
            wait = wait * backoff
            if max_delay is not None:
                wait = min(wait, max_delay)

    raise RetriesExhausted(attempts, last_exc)
