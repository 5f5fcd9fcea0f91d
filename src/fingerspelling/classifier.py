"""Nearest-template classification of hand contours."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fingerspelling.catalog import CatalogSnapshot
from fingerspelling.errors import InvalidPointSetError
from fingerspelling.geometry import hausdorff_distance, translate_to_origin
from fingerspelling.observation import HandObservation
from fingerspelling.profiler import DetectionProfiler
from fingerspelling.templates import GestureTemplate

logger = logging.getLogger("fingerspelling.classifier")

DEFAULT_ACCEPTANCE_THRESHOLD = 40.0


@dataclass(frozen=True)
class MatchResult:
    """Best template for an observation and its Hausdorff distance."""
    template: GestureTemplate
    distance: float

    @property
    def name(self) -> str:
        return self.template.name


def rank_candidates(
    observation: HandObservation,
    snapshot: Optional[CatalogSnapshot],
    profiler: Optional[DetectionProfiler] = None,
) -> list[MatchResult]:
    """Score every template sharing the observation's finger count.

    Templates with a different finger count are never compared. Candidates
    whose contour (or the observation's) is empty or non-finite are skipped.

    Returns:
        Candidates sorted by ascending distance. The sort is stable, so
        equal distances keep catalog order.
    """
    if snapshot is None or not observation.contour:
        return []

    candidates = snapshot.with_finger_count(observation.finger_count)
    if not candidates:
        return []

    try:
        observed = translate_to_origin(observation.contour, observation.location)
    except InvalidPointSetError as e:
        logger.warning("Cannot normalize observed contour: %s", e)
        return []

    scored = []
    for template in candidates:
        distance = _score(observed, template, profiler)
        if distance is None:
            continue
        logger.debug("Candidate %s: h=%.2f", template.name, distance)
        scored.append(MatchResult(template=template, distance=distance))

    scored.sort(key=lambda m: m.distance)
    return scored


def _score(observed, template: GestureTemplate, profiler: Optional[DetectionProfiler]) -> Optional[float]:
    try:
        if profiler is None:
            reference = translate_to_origin(template.contour_points, template.centroid)
            return hausdorff_distance(observed, reference)
        with profiler.stage("normalization"):
            reference = translate_to_origin(template.contour_points, template.centroid)
        with profiler.stage("hausdorff"):
            return hausdorff_distance(observed, reference)
    except InvalidPointSetError as e:
        logger.warning("Skipping template %r: %s", template.name, e)
        return None


def classify(
    observation: HandObservation,
    snapshot: Optional[CatalogSnapshot],
    threshold: float = DEFAULT_ACCEPTANCE_THRESHOLD,
    profiler: Optional[DetectionProfiler] = None,
) -> Optional[MatchResult]:
    """Find the closest template to `observation`.

    Args:
        observation: The observed hand.
        snapshot: Catalog to match against. None means no catalog yet.
        threshold: Acceptance threshold, inclusive.

    Returns:
        The best match, or None when the catalog is missing or empty, no
        template shares the finger count, or the best distance exceeds
        `threshold`.
    """
    ranked = rank_candidates(observation, snapshot, profiler)
    if not ranked:
        return None

    best = ranked[0]
    if best.distance <= threshold:
        return best
    return None


class ContourClassifier:
    """Classifier bound to a fixed acceptance threshold.

    Holds no catalog state, so one instance can be shared across threads.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_ACCEPTANCE_THRESHOLD,
        profiler: Optional[DetectionProfiler] = None,
    ):
        if threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {threshold}")
        self.threshold = threshold
        self.profiler = profiler

    def classify(
        self, observation: HandObservation, snapshot: Optional[CatalogSnapshot]
    ) -> Optional[MatchResult]:
        if self.profiler is not None:
            with self.profiler.stage("classification"):
                return classify(observation, snapshot, self.threshold, self.profiler)
        return classify(observation, snapshot, self.threshold)

    def rank(
        self, observation: HandObservation, snapshot: Optional[CatalogSnapshot]
    ) -> list[MatchResult]:
        return rank_candidates(observation, snapshot, self.profiler)
