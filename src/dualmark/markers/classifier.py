"""
Marker text classification.

The alignment marker's text must match ``(sc)?<digits>x<digits>`` (columns
then rows); any other text is the page identifier. This pattern is the
only thing that tells the two marker roles apart.
"""

import logging
import re
from typing import Optional, Tuple

from dualmark.common.types import Point2D
from dualmark.markers.types import (
    FINDER_POINT_COUNT,
    ClassifiedMarker,
    MarkerDetection,
    MarkerRole,
)

logger = logging.getLogger(__name__)

DIMENSIONS_PATTERN = re.compile(r"(sc)?(\d+)x(\d+)", re.ASCII)

# Largest value a grid dimension may take (signed 32-bit, as printed by producers)
MAX_DIMENSION = 2**31 - 1


def parse_dimensions(text: str) -> Optional[Tuple[int, int]]:
    """
    Parse the (columns, rows) pair of an alignment marker.

    Returns:
        (columns, rows), or None if ``text`` matches the pattern but the
        numbers cannot be used.

    Raises:
        ValueError: If ``text`` is not alignment-marker text at all.

    Example:
        >>> parse_dimensions("sc12x8")
        (12, 8)
    """
    match = DIMENSIONS_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"Not a dimensions marker: {text!r}")

    columns, rows = int(match.group(2)), int(match.group(3))
    logger.debug(f"Parsing dimension ratio: {columns},{rows}")
    if columns > MAX_DIMENSION or rows > MAX_DIMENSION:
        logger.debug("Unable to parse dimension ratios (out of range)")
        return None
    return columns, rows


def classify_marker_text(text: str) -> Tuple[MarkerRole, Optional[int], Optional[int]]:
    """
    Decide a marker's role from its text.

    Returns:
        Tuple of (role, columns, rows); columns/rows are None for
        identifiers and for dimensions text that could not be parsed.

    Example:
        >>> classify_marker_text("12x8")
        (<MarkerRole.DIMENSIONS: 'dimensions'>, 12, 8)
        >>> classify_marker_text("page-42")
        (<MarkerRole.IDENTIFIER: 'identifier'>, None, None)
    """
    if DIMENSIONS_PATTERN.fullmatch(text) is None:
        return MarkerRole.IDENTIFIER, None, None

    dimensions = parse_dimensions(text)
    if dimensions is None:
        return MarkerRole.DIMENSIONS, None, None
    return MarkerRole.DIMENSIONS, dimensions[0], dimensions[1]


def classify_marker(
    detection: MarkerDetection, offset: Optional[Point2D] = None
) -> ClassifiedMarker:
    """
    Classify a sub-region detection and move its corners into photo space.

    Only the finder-pattern corners are kept; extra points reported for
    larger markers are dropped.

    Args:
        detection: Decoder output for a single marker.
        offset: Origin of the decoded sub-region within the photo.

    Raises:
        ValueError: If the detection has fewer than 3 points.
    """
    if len(detection.points) < FINDER_POINT_COUNT:
        raise ValueError(
            f"Expected at least {FINDER_POINT_COUNT} marker points, "
            f"got {len(detection.points)}"
        )

    role, columns, rows = classify_marker_text(detection.text)
    dx, dy = (offset.x, offset.y) if offset is not None else (0.0, 0.0)
    points = tuple(p.translated(dx, dy) for p in detection.points[:FINDER_POINT_COUNT])

    return ClassifiedMarker(
        role=role, text=detection.text, columns=columns, rows=rows, points=points
    )
