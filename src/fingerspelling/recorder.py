"""Observation recording and replay.

Capture sensor sessions to disk for:
- Reproducible detection runs without a depth camera
- Recording templates from a saved frame
- CI on headless machines
"""

from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

from fingerspelling.observation import HandObservation, PushHandSource

logger = logging.getLogger("fingerspelling.recorder")


@dataclass
class RecordedFrame:
    """A single sensor reading in a recording."""
    timestamp: float  # seconds from recording start
    observation: Optional[HandObservation]  # None when no hand was present


class ObservationRecorder:
    """Records the observations a HandSource delivers.

    Usage:
        recorder = ObservationRecorder()
        sensor.subscribe(recorder.add)
        recorder.start()
        ...
        recorder.stop()
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False
        self._lock = threading.Lock()

    def start(self):
        """Begin a new recording session."""
        with self._lock:
            self._frames = []
            self._start_time = time.monotonic()
            self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        with self._lock:
            self._recording = False
            return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add(self, observation: Optional[HandObservation]):
        """Append a reading. Usable directly as a HandSource callback."""
        with self._lock:
            if not self._recording:
                return
            self._frames.append(RecordedFrame(
                timestamp=time.monotonic() - self._start_time,
                observation=observation,
            ))

    def save(self, path: str | Path):
        """Save recording to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with self._lock:
            frames = list(self._frames)

        data = {
            "version": 1,
            "frame_count": len(frames),
            "duration": frames[-1].timestamp if frames else 0.0,
            "frames": [
                {
                    "timestamp": f.timestamp,
                    "observation": f.observation.to_dict() if f.observation else None,
                }
                for f in frames
            ],
        }

        with open(path, "w") as f:
            json.dump(data, f)
        logger.info("Saved %d frames to %s", len(frames), path)


class ObservationPlayer:
    """Replays a recorded session.

    Usage:
        player = ObservationPlayer.load("session.json")
        for frame in player.play():
            ...

        # Or feed a detection loop at the original speed:
        source = ReplayHandSource(player)
        loop.start(source)
        source.run()
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> ObservationPlayer:
        """Load recording from a JSON file."""
        with open(path) as f:
            data = json.load(f)

        frames = [
            RecordedFrame(
                timestamp=f["timestamp"],
                observation=HandObservation.from_dict(f["observation"]) if f.get("observation") else None,
            )
            for f in data["frames"]
        ]
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly (no timing)."""
        yield from self._frames

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing (or scaled by speed factor)."""
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed}")
        start = time.monotonic()

        for frame in self._frames:
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def get_frame(self, index: int) -> Optional[RecordedFrame]:
        if 0 <= index < len(self._frames):
            return self._frames[index]
        return None

    def last_observation(self) -> Optional[HandObservation]:
        """Most recent frame that contains a hand."""
        for frame in reversed(self._frames):
            if frame.observation is not None:
                return frame.observation
        return None


class ReplayHandSource(PushHandSource):
    """HandSource that pushes a recording's frames to its subscribers."""

    def __init__(self, player: ObservationPlayer, speed: float = 1.0, realtime: bool = True):
        super().__init__()
        self._player = player
        self._speed = speed
        self._realtime = realtime
        self._stop = threading.Event()

    def run(self) -> int:
        """Deliver every frame on the calling thread. Returns frames delivered."""
        frames = self._player.play_realtime(self._speed) if self._realtime else self._player.play()
        delivered = 0
        for frame in frames:
            if self._stop.is_set():
                break
            self.push(frame.observation)
            delivered += 1
        return delivered

    def stop(self):
        self._stop.set()
