"""Wall-clock timing for awaitable operations."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Measurement(Generic[T]):
    result: T
    duration: float


async def measure(operation: Callable[[], Awaitable[T]]) -> Measurement[T]:
    """Await ``operation()`` and return its result with the elapsed seconds.

    Exceptions raised by the operation propagate unchanged; a failed
    operation produces no measurement.
    """
    start = time.perf_counter()
    result = await operation()
    end = time.perf_counter()
    return Measurement(result=result, duration=max(0.0, end - start))
