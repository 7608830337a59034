"""
Preview-to-photo remapping of first-pass marker detections.

Markers are first found on a low-resolution preview frame; before the
photo can be re-scanned their points must be moved into photo pixel
space.
"""

import logging
from typing import Iterable, List, Sequence, Tuple

from dualmark.common.geometry import map_points, quad_to_quad_transform
from dualmark.common.types import Point2D
from dualmark.markers.types import MarkerDetection

logger = logging.getLogger(__name__)

# Screen rotations for which preview x/y values are mirrored
DEFAULT_FLIP_ROTATIONS = (180, 270)


def flip_for_rotation(
    screen_rotation: int, flip_rotations: Iterable[int] = DEFAULT_FLIP_ROTATIONS
) -> bool:
    """True if preview points must be reflected for this screen rotation."""
    return screen_rotation % 360 in tuple(flip_rotations)


def _frame_corners(width: float, height: float) -> List[Point2D]:
    return [
        Point2D(x=0, y=0),
        Point2D(x=0, y=height),
        Point2D(x=width, y=0),
        Point2D(x=width, y=height),
    ]


def remap_preview_detections(
    detections: Sequence[MarkerDetection],
    preview_size: Tuple[int, int],
    photo_size: Tuple[int, int],
    flip_xy: bool = False,
) -> List[MarkerDetection]:
    """
    Map preview-space marker points onto the full-resolution photo.

    The transform maps the four preview frame corners onto the four photo
    corners. When ``flip_xy`` is set each point is first reflected through
    the preview centre (``x' = w - x``, ``y' = h - y``).

    Args:
        detections: First-pass detections in preview coordinates.
        preview_size: (width, height) of the preview frame.
        photo_size: (width, height) of the photo.
        flip_xy: Reflect points (180/270 degree screen rotations).

    Returns:
        New detections holding the original points followed by the
        remapped photo-space points.

    Raises:
        ValueError: If either size is not positive.
    """
    preview_w, preview_h = preview_size
    photo_w, photo_h = photo_size
    if min(preview_w, preview_h, photo_w, photo_h) <= 0:
        raise ValueError(
            f"Frame sizes must be positive, got preview {preview_size} "
            f"and photo {photo_size}"
        )

    logger.debug(
        f"Preview ({preview_w},{preview_h}) to photo ({photo_w},{photo_h})"
    )
    matrix = quad_to_quad_transform(
        _frame_corners(preview_w, preview_h), _frame_corners(photo_w, photo_h)
    )

    remapped = []
    for detection in detections:
        points = detection.points
        if flip_xy:
            points = tuple(
                Point2D(x=preview_w - p.x, y=preview_h - p.y) for p in points
            )
        remapped.append(detection.with_appended_points(map_points(matrix, points)))

    return remapped
