"""
Common types and geometry primitives shared across all modules.

This module provides the point, rectangle and image-buffer types plus the
2D geometry helpers (line intersection, rotation, circular mean,
quad-to-quad transforms) used by the marker and rectification modules.
"""

from dualmark.common.geometry import (
    circular_mean_degrees,
    direction_angle,
    line_intersection,
    map_points,
    marker_centre,
    quad_to_quad_transform,
    rotate_point,
    rotate_points,
)
from dualmark.common.types import ImageBuffer, PixelRect, Point2D

__all__ = [
    "ImageBuffer",
    "PixelRect",
    "Point2D",
    "circular_mean_degrees",
    "direction_angle",
    "line_intersection",
    "map_points",
    "marker_centre",
    "quad_to_quad_transform",
    "rotate_point",
    "rotate_points",
]
