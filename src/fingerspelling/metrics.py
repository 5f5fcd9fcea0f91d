"""Prometheus-compatible metrics for the detection engine.

Generates the text exposition format directly.

Tracked metrics:
- fingerspelling_gestures_total (counter, by gesture name)
- fingerspelling_hands_found_total (counter)
- fingerspelling_no_hand_total (counter)
- fingerspelling_hand_too_close_total (counter)
- fingerspelling_ticks_total (counter)
- fingerspelling_tick_latency_seconds (histogram)
- fingerspelling_catalog_templates (gauge)
"""

from __future__ import annotations

import threading
import time
from collections import Counter
from typing import Callable

from fingerspelling.events import EventBus, GestureFound, HandFound, HandTooClose, NoHandFound


class _Histogram:
    """Simple histogram with configurable buckets."""

    def __init__(self, buckets: list[float]):
        self.buckets = sorted(buckets)
        self.bucket_counts = [0] * len(self.buckets)
        self.count = 0
        self.sum = 0.0
        self._lock = threading.Lock()

    def observe(self, value: float):
        with self._lock:
            self.count += 1
            self.sum += value
            for i, b in enumerate(self.buckets):
                if value <= b:
                    self.bucket_counts[i] += 1
                    break

    def render(self, name: str, help_text: str) -> str:
        lines = [
            f"# HELP {name} {help_text}",
            f"# TYPE {name} histogram",
        ]
        with self._lock:
            cumulative = 0
            for i, b in enumerate(self.buckets):
                cumulative += self.bucket_counts[i]
                lines.append(f'{name}_bucket{{le="{b}"}} {cumulative}')
            lines.append(f'{name}_bucket{{le="+Inf"}} {self.count}')
            lines.append(f"{name}_sum {self.sum:.6f}")
            lines.append(f"{name}_count {self.count}")
        return "\n".join(lines)


class MetricsCollector:
    """Counts engine outcomes. Attach it to an EventBus to feed it."""

    def __init__(self):
        self._gesture_counts: Counter = Counter()
        self._hands_found = 0
        self._no_hand = 0
        self._too_close = 0
        self._ticks = 0
        self._catalog_templates = 0
        self._lock = threading.Lock()

        # Tick latency: 1ms to 1s, catalogs can be large
        self._latency = _Histogram(
            [0.001, 0.005, 0.010, 0.025, 0.050, 0.100, 0.250, 0.500, 1.0]
        )
        self._start_time = time.time()

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Subscribe to outcome events. Returns a callable that detaches."""
        unsubscribers = [
            bus.subscribe(GestureFound, lambda e: self.record_gesture(e.template.name)),
            bus.subscribe(HandFound, lambda e: self._bump("_hands_found")),
            bus.subscribe(NoHandFound, lambda e: self._bump("_no_hand")),
            bus.subscribe(HandTooClose, lambda e: self._bump("_too_close")),
        ]

        def detach():
            for unsubscribe in unsubscribers:
                unsubscribe()

        return detach

    def _bump(self, attr: str):
        with self._lock:
            setattr(self, attr, getattr(self, attr) + 1)

    def record_gesture(self, name: str):
        with self._lock:
            self._gesture_counts[name] += 1

    def record_tick(self, latency_seconds: float):
        with self._lock:
            self._ticks += 1
        self._latency.observe(latency_seconds)

    def set_catalog_size(self, count: int):
        self._catalog_templates = count

    def render(self) -> str:
        """Render all metrics in Prometheus text exposition format."""
        lines: list[str] = []

        uptime = time.time() - self._start_time
        lines.append("# HELP fingerspelling_uptime_seconds Time since the collector was created")
        lines.append("# TYPE fingerspelling_uptime_seconds gauge")
        lines.append(f"fingerspelling_uptime_seconds {uptime:.1f}")
        lines.append("")

        lines.append("# HELP fingerspelling_gestures_total Recognized gestures by name")
        lines.append("# TYPE fingerspelling_gestures_total counter")
        with self._lock:
            for name, count in sorted(self._gesture_counts.items()):
                lines.append(f'fingerspelling_gestures_total{{gesture="{name}"}} {count}')
            counters = [
                ("fingerspelling_hands_found_total", "Observations containing a hand", self._hands_found),
                ("fingerspelling_no_hand_total", "No-hand outcomes", self._no_hand),
                ("fingerspelling_hand_too_close_total", "Hands at or past the closeness threshold", self._too_close),
                ("fingerspelling_ticks_total", "Detection ticks run", self._ticks),
            ]
        lines.append("")

        for name, help_text, value in counters:
            lines.append(f"# HELP {name} {help_text}")
            lines.append(f"# TYPE {name} counter")
            lines.append(f"{name} {value}")
            lines.append("")

        lines.append(self._latency.render(
            "fingerspelling_tick_latency_seconds",
            "Detection tick latency in seconds",
        ))
        lines.append("")

        lines.append("# HELP fingerspelling_catalog_templates Templates in the current catalog")
        lines.append("# TYPE fingerspelling_catalog_templates gauge")
        lines.append(f"fingerspelling_catalog_templates {self._catalog_templates}")
        lines.append("")

        return "\n".join(lines) + "\n"

    @property
    def gesture_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._gesture_counts)

    @property
    def ticks(self) -> int:
        with self._lock:
            return self._ticks
