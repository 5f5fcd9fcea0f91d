"""Gesture templates and the persistence contract for them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from fingerspelling.geometry import Contour, Point
from fingerspelling.observation import HandObservation


@dataclass(frozen=True)
class GestureTemplate:
    """A named reference shape recorded from a hand observation.

    Identity is the name: the store keeps one template per name and
    re-recording overwrites it.
    """

    name: str
    finger_count: int
    centroid: Point
    contour_points: Contour

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("template name must be non-empty")
        if self.finger_count < 0:
            raise ValueError(f"finger_count must be >= 0, got {self.finger_count}")
        object.__setattr__(self, "centroid", Point(*self.centroid))
        object.__setattr__(self, "contour_points", tuple(Point(*p) for p in self.contour_points))

    @classmethod
    def from_observation(cls, name: str, observation: HandObservation) -> GestureTemplate:
        """Snapshot the shape of an observed hand under `name`."""
        return cls(
            name=name,
            finger_count=observation.finger_count,
            centroid=observation.location,
            contour_points=observation.contour,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "finger_count": self.finger_count,
            "centroid": list(self.centroid),
            "contour_points": [list(p) for p in self.contour_points],
        }

    @classmethod
    def from_dict(cls, data: dict) -> GestureTemplate:
        return cls(
            name=data["name"],
            finger_count=int(data["finger_count"]),
            centroid=Point(*data["centroid"]),
            contour_points=tuple(Point(*p) for p in data["contour_points"]),
        )

    def __repr__(self) -> str:
        return (
            f"GestureTemplate(name={self.name!r}, finger_count={self.finger_count}, "
            f"points={len(self.contour_points)})"
        )


class TemplateStore(Protocol):
    """Persistence collaborator for gesture templates.

    Implementations raise TemplateLoadError, TemplateSaveError and
    TemplateNotFoundError respectively. Any method may be slow.
    """

    def fetch_all(self) -> list[GestureTemplate]: ...

    def save(self, template: GestureTemplate) -> str: ...

    def read_by_name(self, name: str) -> GestureTemplate: ...
