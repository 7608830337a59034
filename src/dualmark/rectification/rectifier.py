"""
Rectifier: builds and applies the corrective quad-to-quad transform.

The control quad spans both markers: the inferred top-left corner, the
alignment marker's top-left point, the identifier's top-left point and
the inferred bottom-right corner. It is grown by one marker spacing to
cover the whole document and then mapped onto an axis-aligned box whose
aspect ratio follows the grid dimensions.
"""

import logging
import math
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple

import cv2
import numpy as np

from dualmark.common.geometry import (
    map_points,
    quad_to_quad_transform,
    rotate_points,
    scale_transform,
)
from dualmark.common.types import ImageBuffer, Point2D
from dualmark.rectification.types import MarkerGeometry, Orientation, RelocatedMarkers

logger = logging.getLogger(__name__)


class Quad(NamedTuple):
    """Four named corners of a quadrilateral."""

    top_left: Point2D
    top_right: Point2D
    bottom_left: Point2D
    bottom_right: Point2D


@dataclass(frozen=True)
class Correction:
    """
    A corrective transform and the bitmap size it renders into.

    Attributes:
        matrix: 3x3 photo -> rectified transform.
        output_size: (width, height) of the rectified bitmap.
    """

    matrix: np.ndarray
    output_size: Tuple[int, int]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_object_size(
    image_size: Tuple[int, int], columns: int, rows: int, is_horizontal: bool
) -> Tuple[float, float, float]:
    """
    Size of the document in the output frame, before fitting to the view.

    The grid ratio decides the aspect (columns and rows swap in landscape)
    and the limiting axis is padded by 5% on each side so nothing is
    cropped.

    Returns:
        Tuple of (object_width, object_height, padding).

    Example:
        >>> compute_object_size((1000, 1400), 4, 6, False)
        (900.0, 1350.0, 100.0)
    """
    image_width, image_height = image_size
    horizontal_squares, vertical_squares = columns, rows
    if is_horizontal:
        horizontal_squares, vertical_squares = rows, columns

    padding = 2 * (min(image_width, image_height) / 20)

    if vertical_squares >= horizontal_squares:
        object_width = image_width - padding
        object_height = (object_width / horizontal_squares) * vertical_squares
        if object_height >= image_height:
            object_height = image_height - padding
            object_width = (object_height / vertical_squares) * horizontal_squares
    else:
        object_height = image_height - padding
        object_width = (object_height / vertical_squares) * horizontal_squares
        if object_width >= image_width:
            object_width = image_width - padding
            object_height = (object_width / horizontal_squares) * vertical_squares

    logger.debug(
        f"Object size: {object_width},{object_height} "
        f"(image: {image_width},{image_height})"
    )
    return object_width, object_height, padding


def compute_desired_size(
    object_size: Tuple[float, float], padding: float, view_size: Tuple[float, float]
) -> Tuple[float, float]:
    """
    Output size with the view's aspect ratio that fits the padded object.

    Whichever axis of the object is relatively larger than the view keeps
    its padded length; the other axis follows the view ratio.
    """
    object_width, object_height = object_size
    view_width, view_height = view_size

    if object_width / view_width > object_height / view_height:
        desired_width = object_width + padding
        desired_height = desired_width * (view_height / view_width)
    else:
        desired_height = object_height + padding
        desired_width = desired_height * (view_width / view_height)

    return desired_width, desired_height


def expand_control_quad(quad: Quad, rotation: float, spacing: float) -> Quad:
    """
    Grow the marker control quad to the full document extent.

    The quad is rotated upright by ``rotation`` degrees about the origin,
    its right and bottom edges are pushed out by ``spacing``, and it is
    rotated back.
    """
    upright = Quad(*rotate_points(quad, rotation))
    expanded = Quad(
        top_left=upright.top_left,
        top_right=upright.top_right.translated(spacing, 0),
        bottom_left=upright.bottom_left.translated(0, spacing),
        bottom_right=upright.bottom_right.translated(spacing, spacing),
    )
    return Quad(*rotate_points(expanded, -rotation))


def destination_corners(
    orientation: Orientation, start: Point2D, end: Point2D
) -> Quad:
    """
    Where each control corner lands in the output frame.

    ``start`` and ``end`` are the top-left and bottom-right of the object
    box. Each orientation sends the control corners to a different
    physical corner so the page comes out upright.
    """
    sx, sy, ex, ey = start.x, start.y, end.x, end.y

    if orientation == Orientation.LEFT_LANDSCAPE:
        corners = ((ex, sy), (ex, ey), (sx, sy), (sx, ey))
    elif orientation == Orientation.RIGHT_LANDSCAPE:
        corners = ((sx, ey), (sx, sy), (ex, ey), (ex, sy))
    elif orientation == Orientation.INVERTED_PORTRAIT:
        corners = ((ex, ey), (sx, ey), (ex, sy), (sx, sy))
    else:
        corners = ((sx, sy), (ex, sy), (sx, ey), (ex, ey))

    return Quad(*(Point2D(x=x, y=y) for x, y in corners))


def build_correction(
    markers: RelocatedMarkers,
    geometry: MarkerGeometry,
    image_size: Tuple[int, int],
    view_size: Tuple[float, float],
    resize_to_view: bool = False,
) -> Correction:
    """
    Build the photo -> rectified transform and output bitmap size.

    Args:
        markers: Re-located markers in photo space.
        geometry: Rotation, orientation, inferred corners and spacing.
        image_size: (width, height) of the photo.
        view_size: (width, height) whose aspect ratio the output takes.
        resize_to_view: Scale the output so its width equals the view's.
    """
    orientation = geometry.orientation
    object_width, object_height, padding = compute_object_size(
        image_size, markers.columns, markers.rows, orientation.is_horizontal
    )

    control = Quad(
        top_left=geometry.top_left,
        top_right=markers.alignment_points[1],
        bottom_left=markers.id_points[1],
        bottom_right=geometry.bottom_right,
    )
    source = expand_control_quad(control, geometry.rotation, geometry.spacing)

    desired_width, desired_height = compute_desired_size(
        (object_width, object_height), padding, view_size
    )
    start = Point2D(
        x=(desired_width - object_width) / 2, y=(desired_height - object_height) / 2
    )
    end = start.translated(object_width, object_height)
    destination = destination_corners(orientation, start, end)

    logger.debug(f"Transforming to: {start.x},{start.y},{end.x},{end.y}")
    matrix = quad_to_quad_transform(source, destination)

    if resize_to_view:
        scale_factor = view_size[0] / desired_width
        matrix = scale_transform(matrix, scale_factor)
        output_size = (
            _round_half_up(desired_width * scale_factor),
            _round_half_up(desired_height * scale_factor),
        )
        logger.debug(
            f"Resizing image to view - scaling by {scale_factor} to {output_size}"
        )
    else:
        output_size = (_round_half_up(desired_width), _round_half_up(desired_height))

    return Correction(matrix=matrix, output_size=output_size)


def finalise_marker_points(
    correction: Correction,
    id_points: Sequence[Point2D],
    alignment_points: Sequence[Point2D],
) -> Tuple[Tuple[Point2D, ...], Tuple[Point2D, ...]]:
    """Map both markers' corners into the rectified image."""
    return (
        map_points(correction.matrix, id_points),
        map_points(correction.matrix, alignment_points),
    )


def _to_bgra(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2 or image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGRA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2BGRA)
    return image


def apply_correction(
    image: np.ndarray, correction: Correction, interpolation: int = cv2.INTER_LINEAR
) -> np.ndarray:
    """
    Resample ``image`` through the correction into a new BGRA bitmap.

    Areas outside the source extent are fully transparent.
    """
    width, height = correction.output_size
    return cv2.warpPerspective(
        _to_bgra(image),
        correction.matrix,
        (width, height),
        flags=interpolation,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )


def rectify_photo(
    photo: ImageBuffer, correction: Correction, interpolation: int = cv2.INTER_LINEAR
) -> np.ndarray:
    """
    Produce the corrected bitmap and release the source photo.

    The photo buffer cannot be read again afterwards.
    """
    try:
        corrected = apply_correction(photo.to_numpy(), correction, interpolation)
    finally:
        photo.release()

    logger.info(
        f"Rectified photo to {corrected.shape[1]}x{corrected.shape[0]} bitmap"
    )
    return corrected
