"""Timing and memory readings for pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Tuple, TypeVar
import time
import psutil

T = TypeVar("T")


@dataclass
class StageMetrics:
    name: str
    ms: float
    rss_bytes: int


async def measure(fn: Callable[[], Awaitable[T]], name: str) -> Tuple[T, StageMetrics]:
    """Await ``fn()`` and record its wall time and resident memory growth.

    Parameters
    ----------
    fn:
        Coroutine function with no arguments.
    name:
        Name of the stage being measured.
    """

    proc = psutil.Process()
    rss_before = proc.memory_info().rss
    start = time.perf_counter()
    result = await fn()
    end = time.perf_counter()
    rss_after = proc.memory_info().rss
    metrics = StageMetrics(
        name=name,
        ms=(end - start) * 1000.0,
        rss_bytes=max(0, rss_after - rss_before),
    )
    return result, metrics


class Stopwatch:
    def __init__(self):
        self.start = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.start) * 1000.0

    def reset(self) -> None:
        self.start = time.perf_counter()


def summarize(stages: Iterable[StageMetrics]) -> Dict[str, Any]:
    stages = list(stages)
    return {
        "total_ms": sum(s.ms for s in stages),
        "stages": [s.__dict__ for s in stages],
    }
