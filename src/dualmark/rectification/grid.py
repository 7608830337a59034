"""
Grid coordinate model of the rectified image.

Grid coordinates are expressed in hundredths of a grid cell: grid point
(100, 0) is one column away from the origin cell. The identifier marker
sits in the first column and the alignment marker in the last column,
separated by (columns - 1) x (rows - 1) cells.
"""

import logging
from typing import Sequence

from dualmark.common.geometry import marker_centre
from dualmark.common.types import Point2D
from dualmark.rectification.errors import GeometryFailureError
from dualmark.rectification.types import ImageParameters, Orientation

logger = logging.getLogger(__name__)

# Grid units per cell
GRID_UNITS_PER_CELL = 100.0


def compute_image_parameters(
    id_points: Sequence[Point2D],
    alignment_points: Sequence[Point2D],
    columns: int,
    rows: int,
    orientation: Orientation,
) -> ImageParameters:
    """
    Derive grid origin and scale from the final marker positions.

    Scale is the pixel distance between the marker centres divided by the
    number of cells between them; in landscape the column axis runs
    vertically. The origin is offset half a cell from a marker centre,
    with one formula per orientation.

    Raises:
        GeometryFailureError: If ``columns`` or ``rows`` is 1, which leaves
            no distance between marker centres to measure a scale from.

    Example:
        >>> params = compute_image_parameters(ids, aligns, 4, 6, Orientation.NORMAL_PORTRAIT)
        >>> params.grid_x_origin, params.grid_y_origin
        (275.0, 50.0)
    """
    if columns < 2 or rows < 2:
        raise GeometryFailureError(
            f"Grid {columns}x{rows} has a single column or row; scale is undefined"
        )

    align_centre = marker_centre(alignment_points)
    id_centre = marker_centre(id_points)

    if orientation.is_horizontal:
        x_scale = abs(align_centre.y - id_centre.y) / (columns - 1)
        y_scale = abs(id_centre.x - align_centre.x) / (rows - 1)
    else:
        x_scale = abs(align_centre.x - id_centre.x) / (columns - 1)
        y_scale = abs(id_centre.y - align_centre.y) / (rows - 1)

    if orientation == Orientation.LEFT_LANDSCAPE:
        x_origin = align_centre.x + (y_scale / 2)
        y_origin = id_centre.y - (x_scale / 2)
    elif orientation == Orientation.INVERTED_PORTRAIT:
        x_origin = id_centre.x + (x_scale / 2)
        y_origin = align_centre.y + (y_scale / 2)
    elif orientation == Orientation.RIGHT_LANDSCAPE:
        x_origin = align_centre.x - (y_scale / 2)
        y_origin = id_centre.y + (x_scale / 2)
    else:
        x_origin = id_centre.x - (x_scale / 2)
        y_origin = align_centre.y - (y_scale / 2)

    logger.debug(
        f"Code origin finalised to {x_origin},{y_origin} ({x_scale},{y_scale}) - "
        f"{'inverted' if orientation.is_inverted else 'not inverted'}, "
        f"{'horizontal' if orientation.is_horizontal else 'vertical'}"
    )
    return ImageParameters(
        grid_x_origin=x_origin,
        grid_y_origin=y_origin,
        grid_x_scale=x_scale,
        grid_y_scale=y_scale,
        is_horizontal=orientation.is_horizontal,
        is_inverted=orientation.is_inverted,
    )


def grid_to_pixel(params: ImageParameters, grid_point: Point2D) -> Point2D:
    """
    Pixel position of a grid point in the rectified image.

    Example:
        >>> grid_to_pixel(params, Point2D(x=0, y=0))  # the grid origin
        Point2D(x=275.0, y=50.0)
    """
    multiplier = -1 if params.is_inverted else 1
    x_unit = params.grid_x_scale / GRID_UNITS_PER_CELL
    y_unit = params.grid_y_scale / GRID_UNITS_PER_CELL

    if params.is_horizontal:
        x = params.grid_x_origin + multiplier * grid_point.y * x_unit
        y = params.grid_y_origin - multiplier * grid_point.x * y_unit
    else:
        x = params.grid_x_origin + multiplier * grid_point.x * x_unit
        y = params.grid_y_origin + multiplier * grid_point.y * y_unit
    return Point2D(x=x, y=y)


def pixel_to_grid(params: ImageParameters, pixel_point: Point2D) -> Point2D:
    """Grid position of a pixel in the rectified image; inverse of grid_to_pixel."""
    multiplier = -1 if params.is_inverted else 1
    x_unit = params.grid_x_scale / GRID_UNITS_PER_CELL
    y_unit = params.grid_y_scale / GRID_UNITS_PER_CELL

    if params.is_horizontal:
        x = (params.grid_y_origin - pixel_point.y) / y_unit / multiplier
        y = (pixel_point.x - params.grid_x_origin) / x_unit / multiplier
    else:
        x = (pixel_point.x - params.grid_x_origin) / x_unit / multiplier
        y = (pixel_point.y - params.grid_y_origin) / y_unit / multiplier
    return Point2D(x=x, y=y)
