"""Point-set geometry for contour matching.

Contours are compared in centroid-relative coordinates using the one-sided
Hausdorff distance:

    h(A, B) = max_{a in A} min_{b in B} ||a - b||

The distance is directional on purpose. h(A, B) measures how far the worst
point of A is from B, so the sampling density of A dominates the result.
Distances are measured in the image plane (x, y). Depth is carried through
normalization but not compared, since the sensor's contour depth is noisy
and the outline itself lives in the image plane.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence

import numpy as np

from fingerspelling.errors import EmptyPointSetError, InvalidPointSetError


class Point(NamedTuple):
    """An immutable (x, y, z) sensor coordinate."""
    x: float
    y: float
    z: float = 0.0


ORIGIN = Point(0.0, 0.0, 0.0)

Contour = tuple[Point, ...]


def euclidean(p: Sequence[float], q: Sequence[float]) -> float:
    """Planar distance between two points."""
    return math.hypot(p[0] - q[0], p[1] - q[1])


def centroid(points: Sequence[Sequence[float]]) -> Point:
    """Mean of a point set. Raises EmptyPointSetError for an empty set."""
    if len(points) == 0:
        raise EmptyPointSetError("centroid of an empty point set")
    mean = np.asarray(points, dtype=np.float64).mean(axis=0)
    return Point(float(mean[0]), float(mean[1]), float(mean[2]) if len(mean) > 2 else 0.0)


def translate_to_origin(points: Sequence[Sequence[float]], center: Sequence[float]) -> Contour:
    """Re-express `points` relative to `center`.

    Each axis is rounded to the nearest integer unit to suppress sensor
    jitter. The input is not modified; length and order are preserved.
    Raises InvalidPointSetError if a coordinate is NaN or infinite.
    """
    cz = center[2] if len(center) > 2 else 0.0
    try:
        return tuple(
            Point(
                float(round(p[0] - center[0])),
                float(round(p[1] - center[1])),
                float(round((p[2] if len(p) > 2 else 0.0) - cz)),
            )
            for p in points
        )
    except (ValueError, OverflowError) as e:
        raise InvalidPointSetError(f"cannot normalize point set: {e}") from e


def _as_plane(points: Sequence[Sequence[float]]) -> np.ndarray:
    plane = np.asarray(points, dtype=np.float64).reshape(len(points), -1)[:, :2]
    if not np.isfinite(plane).all():
        raise InvalidPointSetError("point set has non-finite coordinates")
    return plane


def hausdorff_distance(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> float:
    """One-sided Hausdorff distance from `a` to `b`.

    Args:
        a: Reference point set (its worst point drives the result).
        b: Target point set.

    Returns:
        max over a of the distance to the nearest point in b.

    Raises:
        EmptyPointSetError: if either set is empty.
        InvalidPointSetError: if a point has a NaN or infinite coordinate.
    """
    if len(a) == 0 or len(b) == 0:
        raise EmptyPointSetError(
            f"hausdorff distance undefined for empty set (|A|={len(a)}, |B|={len(b)})"
        )

    pa = _as_plane(a)
    pb = _as_plane(b)

    # Row-wise chunks bound the |A| x |B| distance matrix for long contours
    worst = 0.0
    chunk = max(1, 4096 // max(1, len(pb)))
    for start in range(0, len(pa), chunk):
        block = pa[start:start + chunk]
        diff = block[:, None, :] - pb[None, :, :]
        sq = np.einsum("ijk,ijk->ij", diff, diff)
        worst = max(worst, float(sq.min(axis=1).max()))

    return math.sqrt(worst)
