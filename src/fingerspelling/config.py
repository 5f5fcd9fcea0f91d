"""Detector configuration, loadable from YAML.

Example ``detector.yml``:

    interval_ms: 50
    acceptance_threshold: 40
    closeness_threshold: 80
    lefty: false
    righty: true
    speech: true
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path

import yaml

from fingerspelling.classifier import DEFAULT_ACCEPTANCE_THRESHOLD
from fingerspelling.errors import ConfigError

DEFAULT_INTERVAL_MS = 50
DEFAULT_CLOSENESS_THRESHOLD = 80.0


@dataclass
class DetectorConfig:
    """Settings consumed by DetectionLoop.start().

    `lefty`, `righty` and `speech` are not interpreted by the engine; they
    are carried for presentation collaborators.
    """

    interval_ms: int = DEFAULT_INTERVAL_MS
    acceptance_threshold: float = DEFAULT_ACCEPTANCE_THRESHOLD
    closeness_threshold: float = DEFAULT_CLOSENESS_THRESHOLD
    lefty: bool = False
    righty: bool = True
    speech: bool = False

    def __post_init__(self):
        self.validate()

    def validate(self):
        validate_interval(self.interval_ms)
        for name in ("acceptance_threshold", "closeness_threshold"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not value >= 0:
                raise ConfigError(f"{name} must be a number >= 0, got {value!r}")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> DetectorConfig:
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"unknown config keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> DetectorConfig:
        """Load a config file. Missing keys keep their defaults."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"config {path} must be a mapping")
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def validate_interval(interval_ms) -> int:
    if isinstance(interval_ms, bool) or not isinstance(interval_ms, int) or interval_ms <= 0:
        raise ConfigError(f"interval_ms must be a positive integer, got {interval_ms!r}")
    return interval_ms
