"""
Geometry primitives shared by the rectification stages.

All functions are pure: they never modify their inputs and always return
new points, so every stage of the pipeline can be audited on its own.
"""

import logging
import math
from typing import Iterable, Optional, Sequence, Tuple

import cv2
import numpy as np

from dualmark.common.types import Point2D

logger = logging.getLogger(__name__)

# Determinant threshold below which two lines are treated as parallel
PARALLEL_EPSILON = 1e-5

# Resultant vector length below which a circular mean is undefined
CIRCULAR_MEAN_EPSILON = 1e-9


def direction_angle(p1: Point2D, p2: Point2D) -> float:
    """
    Direction of the vector from ``p2`` to ``p1`` in radians.

    Computed as ``atan2(p1.y - p2.y, p1.x - p2.x)``.
    """
    return math.atan2(p1.y - p2.y, p1.x - p2.x)


def circular_mean_degrees(angles: Iterable[float]) -> Optional[float]:
    """
    Average a set of angles (radians) on the circle.

    Each angle contributes a unit vector; the mean is the direction of the
    summed vector, so 359° and 1° average to 0° rather than 180°.

    Args:
        angles: Angles in radians.

    Returns:
        Mean angle in degrees within (-180, 180], or None when the summed
        vector has (near) zero length and the mean is undefined, e.g. for
        the pair {0°, 180°}.

    Example:
        >>> circular_mean_degrees([0.0, 0.0, 0.0, 0.0])
        0.0
    """
    angles = list(angles)
    if not angles:
        raise ValueError("At least one angle is required")

    x = sum(math.cos(a) for a in angles)
    y = sum(math.sin(a) for a in angles)

    if math.hypot(x, y) < CIRCULAR_MEAN_EPSILON * len(angles):
        logger.debug(f"Circular mean undefined for angles {angles}")
        return None

    return math.degrees(math.atan2(y, x))


def line_intersection(
    l1p1: Point2D, l1p2: Point2D, l2p1: Point2D, l2p2: Point2D
) -> Optional[Point2D]:
    """
    Intersect the infinite lines through (l1p1, l1p2) and (l2p1, l2p2).

    Each line is put in general form ``A*x + B*y = C`` and the system is
    solved with Cramer's rule.

    Returns:
        Intersection point, or None when the lines are (approximately)
        parallel, i.e. ``|det| < 1e-5``.

    Example:
        >>> line_intersection(
        ...     Point2D(x=0, y=0), Point2D(x=1, y=1),
        ...     Point2D(x=0, y=1), Point2D(x=1, y=2),
        ... ) is None
        True
    """
    a1 = l1p2.y - l1p1.y
    b1 = l1p1.x - l1p2.x
    c1 = a1 * l1p1.x + b1 * l1p1.y

    a2 = l2p2.y - l2p1.y
    b2 = l2p1.x - l2p2.x
    c2 = a2 * l2p1.x + b2 * l2p1.y

    det = a1 * b2 - a2 * b1
    if abs(det) < PARALLEL_EPSILON:
        return None

    return Point2D(x=(b2 * c1 - b1 * c2) / det, y=(a1 * c2 - a2 * c1) / det)


def rotate_point(
    point: Point2D, angle_degrees: float, centre: Optional[Point2D] = None
) -> Point2D:
    """
    Rotate a point about ``centre`` (default: the origin).

    Uses ``x' = cos*x - sin*y``, ``y' = sin*x + cos*y`` in image
    coordinates, so positive angles turn clockwise on screen.
    """
    cx, cy = (centre.x, centre.y) if centre is not None else (0.0, 0.0)
    radians = math.radians(angle_degrees)
    cos_t = math.cos(radians)
    sin_t = math.sin(radians)
    dx = point.x - cx
    dy = point.y - cy
    return Point2D(x=cos_t * dx - sin_t * dy + cx, y=sin_t * dx + cos_t * dy + cy)


def rotate_points(
    points: Sequence[Point2D], angle_degrees: float, centre: Optional[Point2D] = None
) -> Tuple[Point2D, ...]:
    """Rotate every point about ``centre``; returns a new tuple."""
    return tuple(rotate_point(p, angle_degrees, centre) for p in points)


def points_to_array(points: Sequence[Point2D]) -> np.ndarray:
    """Stack points into an (N, 2) float64 array."""
    return np.array([[p.x, p.y] for p in points], dtype=np.float64).reshape(-1, 2)


def array_to_points(arr: np.ndarray) -> Tuple[Point2D, ...]:
    """Convert an (N, 2) array into a tuple of points."""
    arr = np.asarray(arr, dtype=np.float64).reshape(-1, 2)
    return tuple(Point2D(x=float(x), y=float(y)) for x, y in arr)


def quad_to_quad_transform(
    source: Sequence[Point2D], destination: Sequence[Point2D]
) -> np.ndarray:
    """
    3x3 matrix mapping 4 source points onto 4 destination points.

    Raises:
        ValueError: If either side does not have exactly 4 points.
    """
    if len(source) != 4 or len(destination) != 4:
        raise ValueError(
            f"Expected 4 source and 4 destination points, "
            f"got {len(source)} and {len(destination)}"
        )

    src = points_to_array(source).astype(np.float32)
    dst = points_to_array(destination).astype(np.float32)
    matrix = cv2.getPerspectiveTransform(src, dst)
    return matrix.astype(np.float64)


def scale_transform(matrix: np.ndarray, factor: float) -> np.ndarray:
    """Return ``matrix`` followed by a uniform scale about the origin."""
    scale = np.diag([factor, factor, 1.0])
    return scale @ np.asarray(matrix, dtype=np.float64)


def map_points(matrix: np.ndarray, points: Sequence[Point2D]) -> Tuple[Point2D, ...]:
    """Apply a 3x3 transform to points; returns new points."""
    if not points:
        return ()
    src = points_to_array(points).reshape(-1, 1, 2)
    mapped = cv2.perspectiveTransform(src, np.asarray(matrix, dtype=np.float64))
    return array_to_points(mapped)


def marker_centre(points: Sequence[Point2D]) -> Point2D:
    """Centre of a marker: midpoint of its first (bottom-left) and third (top-right) points."""
    return Point2D(x=(points[0].x + points[2].x) / 2, y=(points[0].y + points[2].y) / 2)
