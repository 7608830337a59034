"""
Orientation and control-point inference from the two markers.

Marker corners follow the finder convention [bottom-left, top-left,
top-right]. From these the module estimates the document's rotation,
infers the two document corners not covered by a marker, classifies the
orientation and measures the marker spacing.
"""

import logging
import math
from typing import Sequence, Tuple

from dualmark.common.geometry import (
    circular_mean_degrees,
    direction_angle,
    line_intersection,
)
from dualmark.common.types import Point2D
from dualmark.rectification.errors import GeometryFailureError
from dualmark.rectification.types import MarkerGeometry, Orientation

logger = logging.getLogger(__name__)


def estimate_rotation(
    id_points: Sequence[Point2D], alignment_points: Sequence[Point2D]
) -> float:
    """
    Rotation correction angle (degrees) implied by both markers.

    Uses the left edge (point 0 -> 1, expected at 90°) and top edge
    (point 1 -> 2, expected at 180°) of each marker; the four residual
    angles are averaged on the circle and negated.

    Raises:
        GeometryFailureError: If the residual angles cancel out and no
            mean direction exists.

    Example:
        >>> estimate_rotation(id_points, alignment_points)  # upright page
        -0.0
    """
    half_pi = math.pi / 2
    r1 = direction_angle(id_points[0], id_points[1]) - half_pi
    r2 = direction_angle(id_points[1], id_points[2]) - math.pi
    r3 = direction_angle(alignment_points[0], alignment_points[1]) - half_pi
    r4 = direction_angle(alignment_points[1], alignment_points[2]) - math.pi

    mean = circular_mean_degrees([r1, r2, r3, r4])
    if mean is None:
        raise GeometryFailureError(
            f"Rotation is undefined for edge angles ({r1:.3f},{r2:.3f},{r3:.3f},{r4:.3f})"
        )

    rotation = -mean
    logger.debug(
        f"Image rotation required: {rotation:.3f} "
        f"({r1:.3f},{r2:.3f},{r3:.3f},{r4:.3f})"
    )
    return rotation


def infer_control_points(
    id_points: Sequence[Point2D], alignment_points: Sequence[Point2D]
) -> Tuple[Point2D, Point2D]:
    """
    Infer the top-left and bottom-right control points.

    Top-left is where the identifier's left edge meets the alignment
    marker's top edge; bottom-right is where the identifier's top edge
    meets the alignment marker's left edge.

    Raises:
        GeometryFailureError: If either pair of edges is near-parallel.
    """
    top_left = line_intersection(
        id_points[0], id_points[1], alignment_points[2], alignment_points[1]
    )
    bottom_right = line_intersection(
        id_points[1], id_points[2], alignment_points[1], alignment_points[0]
    )
    logger.debug(f"Calculated top left: {top_left}")
    logger.debug(f"Calculated bottom right: {bottom_right}")

    if top_left is None or bottom_right is None:
        raise GeometryFailureError(
            "Marker edges are near-parallel; cannot infer document corners"
        )
    return top_left, bottom_right


def classify_orientation(
    id_points: Sequence[Point2D], alignment_points: Sequence[Point2D]
) -> Orientation:
    """
    Classify the page orientation from the markers' first points.

    Alignment above identifier: not inverted, horizontal if it is also to
    the left. Otherwise inverted, horizontal if it is to the right.
    """
    align = alignment_points[0]
    ident = id_points[0]

    if align.y < ident.y:
        is_inverted = False
        is_horizontal = align.x < ident.x
    else:
        is_inverted = True
        is_horizontal = align.x > ident.x

    return Orientation.from_flags(is_horizontal, is_inverted)


def calculate_spacing(
    id_points: Sequence[Point2D],
    alignment_points: Sequence[Point2D],
    is_horizontal: bool,
) -> float:
    """Average spacing between analogous marker points, per orientation axis."""
    ids, aligns = id_points, alignment_points
    if is_horizontal:
        spacing = (
            abs(ids[0].x - ids[1].x)
            + abs(ids[1].y - ids[2].y)
            + abs(aligns[0].x - aligns[1].x)
            + abs(aligns[1].y - aligns[2].y)
        ) / 4
    else:
        spacing = (
            abs(ids[0].y - ids[1].y)
            + abs(ids[1].x - ids[2].x)
            + abs(aligns[0].y - aligns[1].y)
            + abs(aligns[1].x - aligns[2].x)
        ) / 4

    logger.debug(f"Average point spacing: {spacing}")
    return spacing


def analyse_markers(
    id_points: Sequence[Point2D], alignment_points: Sequence[Point2D]
) -> MarkerGeometry:
    """
    Run rotation, control-point, orientation and spacing inference.

    Raises:
        GeometryFailureError: On degenerate marker placement.
    """
    rotation = estimate_rotation(id_points, alignment_points)
    top_left, bottom_right = infer_control_points(id_points, alignment_points)
    orientation = classify_orientation(id_points, alignment_points)
    spacing = calculate_spacing(id_points, alignment_points, orientation.is_horizontal)

    logger.info(
        f"Marker geometry: rotation={rotation:.2f}°, "
        f"orientation={orientation.name}, spacing={spacing:.1f}px"
    )
    return MarkerGeometry(
        rotation=rotation,
        top_left=top_left,
        bottom_right=bottom_right,
        orientation=orientation,
        spacing=spacing,
    )
