"""Self-paced repeating task.

The next run is armed only after the current one returns, so a slow run
delays the schedule but two runs never overlap.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger("fingerspelling.scheduler")


class RepeatingTask:
    """Runs `fn` on a background thread, waiting `interval` seconds between runs.

    Usage:
        task = RepeatingTask(tick, interval=0.05, name="detection-tick")
        task.start()
        task.interval = 0.1   # applies from the next wait
        task.cancel()
    """

    def __init__(self, fn: Callable[[], None], interval: float, name: str = "repeating-task"):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._fn = fn
        self._interval = interval
        self._name = name
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._runs = 0

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float):
        if value <= 0:
            raise ValueError(f"interval must be positive, got {value}")
        self._interval = value

    @property
    def runs(self) -> int:
        return self._runs

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._cancelled.is_set()

    def start(self):
        if self._thread is not None:
            raise RuntimeError(f"{self._name} already started")
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()

    def _loop(self):
        # wait() returns True once cancelled
        while not self._cancelled.wait(self._interval):
            try:
                self._fn()
            except Exception as e:
                logger.error("%s run failed: %s", self._name, e, exc_info=True)
            self._runs += 1

    def cancel(self):
        """Stop scheduling further runs. Safe to call from the task itself."""
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None):
        """Wait for an in-flight run to finish after `cancel()`."""
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
