"""Stage timing for the detection tick.

`ContourClassifier` times "normalization", "hausdorff" and "classification";
`DetectionLoop` times each "tick". Only the most recent timings of each
stage are kept.
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict, deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator


@dataclass
class StageStats:
    name: str
    avg_ms: float
    max_ms: float
    p95_ms: float
    call_count: int


class DetectionProfiler:
    """Rolling-window wall-clock timings keyed by stage name.

    Usage:
        profiler = DetectionProfiler()
        loop = DetectionLoop(catalog, profiler=profiler)
        ...
        for name, stats in profiler.summary().items():
            print(name, stats["p95_ms"])
    """

    def __init__(self, window_size: int = 120):
        self._timings: defaultdict[str, deque[float]] = defaultdict(lambda: deque(maxlen=window_size))
        self._calls: defaultdict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        t0 = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            with self._lock:
                self._timings[name].append(elapsed_ms)
                self._calls[name] += 1

    def get_stage_stats(self, name: str) -> StageStats | None:
        with self._lock:
            window = sorted(self._timings.get(name, ()))
            calls = self._calls.get(name, 0)
        if not window:
            return None
        return StageStats(
            name=name,
            avg_ms=sum(window) / len(window),
            max_ms=window[-1],
            p95_ms=window[min(len(window) - 1, int(len(window) * 0.95))],
            call_count=calls,
        )

    def summary(self) -> dict[str, dict]:
        """Rounded stats for every stage timed so far, in first-seen order."""
        with self._lock:
            names = list(self._timings)
        result = {}
        for name in names:
            stats = self.get_stage_stats(name)
            if stats is not None:
                result[name] = {
                    "avg_ms": round(stats.avg_ms, 3),
                    "max_ms": round(stats.max_ms, 3),
                    "p95_ms": round(stats.p95_ms, 3),
                    "calls": stats.call_count,
                }
        return result
