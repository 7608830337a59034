"""
Precision re-location of both markers in the full-resolution photo.

The remapped first-pass points are only estimates: the phone may have
moved between preview and capture, and preview/photo aspect ratios can
differ. Each marker is therefore decoded again inside an enlarged window
around its estimated position.
"""

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from dualmark.common.types import PixelRect
from dualmark.markers.classifier import classify_marker
from dualmark.markers.decoder import MarkerDecoder
from dualmark.markers.types import ClassifiedMarker, MarkerDetection, MarkerRole
from dualmark.rectification.errors import InvalidInputError, ScanFailureError
from dualmark.rectification.types import RelocatedMarkers

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_FRACTION = 0.1
DEFAULT_MIN_POINTS = 6


def validate_point_count(
    detection: MarkerDetection, min_points: int = DEFAULT_MIN_POINTS
) -> None:
    """
    Check a remapped detection has a usable number of points.

    Raises:
        InvalidInputError: If there are fewer than ``min_points`` points or
            an odd number of them.
    """
    count = len(detection.points)
    if count < min_points or count % 2 != 0:
        raise InvalidInputError(
            f"Marker detection has {count} points; need an even number >= {min_points}"
        )


def search_window(
    detection: MarkerDetection,
    photo_width: int,
    photo_height: int,
    search_fraction: float = DEFAULT_SEARCH_FRACTION,
) -> PixelRect:
    """
    Window of the photo in which to re-decode a marker.

    The bounding box of the distal (remapped) half of the points is grown
    by ``max(width, height) * search_fraction`` pixels on every side and
    clipped to the photo.

    Raises:
        ScanFailureError: If the grown box does not overlap the photo.
    """
    points = detection.distal_points()
    min_x = min(p.x for p in points)
    max_x = max(p.x for p in points)
    min_y = min(p.y for p in points)
    max_y = max(p.y for p in points)

    margin = int(max(photo_width, photo_height) * search_fraction)

    left = max(min_x - margin, 0.0)
    top = max(min_y - margin, 0.0)
    right = min(max_x + margin, float(photo_width))
    bottom = min(max_y + margin, float(photo_height))

    if left >= right or top >= bottom:
        raise ScanFailureError(
            f"Search area ({min_x - margin:.0f},{min_y - margin:.0f},"
            f"{max_x + margin:.0f},{max_y + margin:.0f}) lies outside the photo"
        )

    try:
        window = PixelRect.from_bounds(left, top, right, bottom)
    except ValueError as e:
        raise ScanFailureError(f"Search area is empty after rounding: {e}") from e

    logger.debug(f"New scan area (clipped): {window}")
    return window


def decode_in_window(
    photo: np.ndarray, window: PixelRect, decoder: MarkerDecoder
) -> ClassifiedMarker:
    """
    Decode the marker inside ``window`` and express it in photo space.

    Raises:
        ScanFailureError: If no usable marker is found in the window.
    """
    try:
        detection = decoder.decode(window.crop(photo))
    finally:
        decoder.reset()

    if detection is None:
        raise ScanFailureError(f"No marker found in {window}")

    logger.debug(f"Found code content: {detection.text}")
    try:
        return classify_marker(detection, offset=window.origin)
    except ValueError as e:
        raise ScanFailureError(str(e)) from e


def relocate_markers(
    photo: np.ndarray,
    detections: Sequence[MarkerDetection],
    decoder: MarkerDecoder,
    search_fraction: float = DEFAULT_SEARCH_FRACTION,
    min_points: int = DEFAULT_MIN_POINTS,
    on_page_identified: Optional[Callable[[str], None]] = None,
) -> RelocatedMarkers:
    """
    Re-scan the photo around each remapped detection.

    Args:
        photo: Full-resolution photo (H, W[, C]).
        detections: Detections in photo space, original + remapped points.
        decoder: Marker decoder, reset after every call.
        search_fraction: Window margin as a fraction of the long side.
        min_points: Minimum number of points per detection.
        on_page_identified: Called with the page id once both markers
            have been found and classified.

    Returns:
        RelocatedMarkers with photo-space corner points, page id and grid
        dimensions.

    Raises:
        InvalidInputError: On malformed point counts.
        ScanFailureError: If a marker cannot be found, or the detections are
            not exactly one identifier and one marker with usable dimensions.
    """
    photo_height, photo_width = photo.shape[:2]

    for detection in detections:
        validate_point_count(detection, min_points)
    if len(detections) != 2:
        raise ScanFailureError(
            f"Expected one identifier and one dimensions marker, "
            f"got {len(detections)} detections"
        )

    identifier: Optional[ClassifiedMarker] = None
    alignment: Optional[ClassifiedMarker] = None

    for detection in detections:
        window = search_window(detection, photo_width, photo_height, search_fraction)
        marker = decode_in_window(photo, window, decoder)

        if marker.role == MarkerRole.DIMENSIONS:
            if alignment is not None:
                raise ScanFailureError(
                    f"Found two dimensions markers: '{alignment.text}' and '{marker.text}'"
                )
            alignment = marker
        else:
            if identifier is not None:
                raise ScanFailureError(
                    f"Found two identifier markers: '{identifier.text}' and '{marker.text}'"
                )
            identifier = marker

    if alignment is None or not alignment.has_dimensions:
        raise ScanFailureError("Alignment marker with valid dimensions not found")
    if identifier is None:
        raise ScanFailureError("Identifier marker not found")

    logger.info(
        f"Re-scan found page '{identifier.text}' with grid "
        f"{alignment.columns}x{alignment.rows}"
    )
    if on_page_identified is not None:
        on_page_identified(identifier.text)

    return RelocatedMarkers(
        id_points=identifier.points,
        alignment_points=alignment.points,
        page_id=identifier.text,
        columns=alignment.columns,
        rows=alignment.rows,
    )
