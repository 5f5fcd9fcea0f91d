"""Tests for the self-paced repeating task."""

import threading
import time

import pytest

from fingerspelling.scheduler import RepeatingTask


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.002)
    return predicate()


class TestRepeatingTask:
    def test_runs_repeatedly(self):
        calls = []
        task = RepeatingTask(lambda: calls.append(1), interval=0.005)
        task.start()
        try:
            assert wait_for(lambda: len(calls) >= 3)
        finally:
            task.cancel()
            task.join(1)

    def test_cancel_stops_runs(self):
        calls = []
        task = RepeatingTask(lambda: calls.append(1), interval=0.005)
        task.start()
        assert wait_for(lambda: len(calls) >= 1)
        task.cancel()
        task.join(1)
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count
        assert not task.is_running

    def test_cancel_before_first_run(self):
        calls = []
        task = RepeatingTask(lambda: calls.append(1), interval=0.2)
        task.start()
        task.cancel()
        task.join(1)
        assert calls == []

    def test_runs_never_overlap(self):
        active = []
        overlap = []
        lock = threading.Lock()

        def slow():
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlap.append(True)
            time.sleep(0.01)
            with lock:
                active.pop()

        task = RepeatingTask(slow, interval=0.001)
        task.start()
        assert wait_for(lambda: task.runs >= 5)
        task.cancel()
        task.join(1)
        assert overlap == []

    def test_exception_does_not_stop_schedule(self):
        calls = []

        def flaky():
            calls.append(1)
            raise RuntimeError("tick failed")

        task = RepeatingTask(flaky, interval=0.002)
        task.start()
        try:
            assert wait_for(lambda: len(calls) >= 3)
        finally:
            task.cancel()
            task.join(1)

    def test_interval_change_applies_to_next_wait(self):
        task = RepeatingTask(lambda: None, interval=0.005)
        task.interval = 0.5
        assert task.interval == 0.5

    @pytest.mark.parametrize("bad", [0, -1])
    def test_invalid_interval(self, bad):
        with pytest.raises(ValueError):
            RepeatingTask(lambda: None, interval=bad)
        task = RepeatingTask(lambda: None, interval=1)
        with pytest.raises(ValueError):
            task.interval = bad

    def test_cancel_from_inside_run(self):
        calls = []
        holder = {}

        def self_cancel():
            calls.append(1)
            holder["task"].cancel()
            holder["task"].join(1)  # no-op on its own thread

        task = RepeatingTask(self_cancel, interval=0.002)
        holder["task"] = task
        task.start()
        assert wait_for(lambda: not task.is_running)
        time.sleep(0.02)
        assert calls == [1]

    def test_double_start_rejected(self):
        task = RepeatingTask(lambda: None, interval=0.5)
        task.start()
        try:
            with pytest.raises(RuntimeError):
                task.start()
        finally:
            task.cancel()
