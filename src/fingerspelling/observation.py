"""Hand observations delivered by the sensor and the slot that holds the latest one."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from fingerspelling.geometry import Contour, Point


@dataclass(frozen=True)
class Volume:
    """Bounding volume of the tracked hand, in sensor units."""
    width: float = 0.0
    height: float = 0.0
    depth: float = 0.0


@dataclass(frozen=True)
class HandObservation:
    """A single processed sensor reading of the closest hand."""
    contour: Contour
    finger_count: int
    location: Point  # contour centroid
    volume: Volume = field(default_factory=Volume)
    palm: Optional[Point] = None
    fingertips: tuple[Point, ...] = ()

    def __post_init__(self):
        if self.finger_count < 0:
            raise ValueError(f"finger_count must be >= 0, got {self.finger_count}")
        # Accept any iterable of 3-sequences, store an immutable contour
        object.__setattr__(self, "contour", tuple(Point(*p) for p in self.contour))
        object.__setattr__(self, "location", Point(*self.location))
        object.__setattr__(self, "fingertips", tuple(Point(*p) for p in self.fingertips))
        if self.palm is not None:
            object.__setattr__(self, "palm", Point(*self.palm))

    @property
    def has_fingers(self) -> bool:
        return self.finger_count > 0

    def to_dict(self) -> dict:
        return {
            "contour": [list(p) for p in self.contour],
            "finger_count": self.finger_count,
            "location": list(self.location),
            "volume": {
                "width": self.volume.width,
                "height": self.volume.height,
                "depth": self.volume.depth,
            },
            "palm": list(self.palm) if self.palm is not None else None,
            "fingertips": [list(p) for p in self.fingertips],
        }

    @classmethod
    def from_dict(cls, data: dict) -> HandObservation:
        palm = data.get("palm")
        return cls(
            contour=tuple(Point(*p) for p in data["contour"]),
            finger_count=int(data["finger_count"]),
            location=Point(*data["location"]),
            volume=Volume(**data.get("volume", {})),
            palm=Point(*palm) if palm is not None else None,
            fingertips=tuple(Point(*p) for p in data.get("fingertips", [])),
        )


ObservationCallback = Callable[[Optional[HandObservation]], None]


class HandSource(Protocol):
    """Push interface of the hand-tracking sensor.

    Callbacks receive a HandObservation, or None when no hand is present.
    They may be invoked from any thread.
    """

    def subscribe(self, callback: ObservationCallback) -> None: ...

    def unsubscribe(self, callback: ObservationCallback) -> None: ...


class PushHandSource:
    """In-process HandSource: whatever is passed to `push()` reaches subscribers.

    Callbacks run on the pushing thread, outside the subscriber lock, so a
    callback may unsubscribe itself.
    """

    def __init__(self):
        self._callbacks: list[ObservationCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: ObservationCallback) -> None:
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def unsubscribe(self, callback: ObservationCallback) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def push(self, observation: Optional[HandObservation]):
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(observation)


class LatestObservation:
    """Single-slot handoff between the sensor thread and the detection tick.

    Observations are immutable, so replacing the reference under a lock is
    enough for a reader to always see a whole reading.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[HandObservation] = None

    def put(self, observation: Optional[HandObservation]):
        with self._lock:
            self._value = observation

    def get(self) -> Optional[HandObservation]:
        with self._lock:
            return self._value

    def clear(self):
        self.put(None)
