"""
Data types and structures for the Rectification module.

Provides type-safe containers for configuration, intermediate geometry and
the results handed back to callers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from dualmark.common.types import Point2D


class DecisionStatus(Enum):
    """Pipeline decision outcomes."""

    PASS = "PASS"
    FAIL = "FAIL"


class FailureReason(Enum):
    """Specific reasons for a failed pass."""

    INVALID_INPUT = "Invalid Input"  # Malformed marker point counts
    SCAN_FAILURE = "Scan Failure"  # Marker not found or role missing/unparsable
    GEOMETRY_FAILURE = "Geometry Failure"  # Parallel lines, undefined rotation
    NONE = "None"  # No failure (passed all stages)


class Orientation(Enum):
    """
    Document orientation as the pair (is_horizontal, is_inverted).

    Derived from where the alignment marker sits relative to the
    identifier marker; only the two flags are ever stored.
    """

    NORMAL_PORTRAIT = (False, False)
    INVERTED_PORTRAIT = (False, True)
    RIGHT_LANDSCAPE = (True, False)
    LEFT_LANDSCAPE = (True, True)

    @property
    def is_horizontal(self) -> bool:
        return self.value[0]

    @property
    def is_inverted(self) -> bool:
        return self.value[1]

    @classmethod
    def from_flags(cls, is_horizontal: bool, is_inverted: bool) -> "Orientation":
        """Look up the orientation for a flag pair."""
        return cls((bool(is_horizontal), bool(is_inverted)))


@dataclass
class RemapConfig:
    """Configuration for preview-to-photo remapping."""

    flip_rotations: List[int]  # Screen rotations (degrees) that flip x/y


@dataclass
class RelocationConfig:
    """Configuration for the full-resolution marker search."""

    search_fraction: float  # Window margin as a fraction of the photo's long side
    min_points: int  # Minimum points per first-pass detection


@dataclass
class OutputConfig:
    """Configuration for the corrected bitmap."""

    view_width: int
    view_height: int
    resize_to_view: bool
    interpolation: str


@dataclass
class DecoderConfig:
    """Configuration for the default OpenCV marker decoder."""

    try_harder: bool
    upscale_factor: float


@dataclass
class RectificationConfig:
    """Complete rectification module configuration."""

    remap: RemapConfig
    relocation: RelocationConfig
    output: OutputConfig
    decoder: DecoderConfig


def _copy_points(points: Sequence[Point2D]) -> Tuple[Point2D, ...]:
    return tuple(Point2D(x=p.x, y=p.y) for p in points)


@dataclass(frozen=True)
class RelocatedMarkers:
    """
    Both markers after the full-resolution re-scan.

    Attributes:
        id_points: Identifier marker corners in photo space (3 points).
        alignment_points: Alignment marker corners in photo space (3 points).
        page_id: Identifier marker text.
        columns: Grid columns from the alignment marker.
        rows: Grid rows from the alignment marker.
    """

    id_points: Tuple[Point2D, ...]
    alignment_points: Tuple[Point2D, ...]
    page_id: str
    columns: int
    rows: int


@dataclass(frozen=True)
class MarkerGeometry:
    """
    Rotation, orientation and inferred corners derived from both markers.

    Attributes:
        rotation: Rotation correction angle in degrees.
        top_left: Inferred top-left control point.
        bottom_right: Inferred bottom-right control point.
        orientation: Discrete document orientation.
        spacing: Average spacing between analogous marker points (pixels).
    """

    rotation: float
    top_left: Point2D
    bottom_right: Point2D
    orientation: Orientation
    spacing: float


@dataclass(frozen=True)
class CodeParameters:
    """
    Final marker positions in the rectified image.

    Points are deep copies; nothing here references decoder-owned data.
    """

    id_points: Tuple[Point2D, ...]
    alignment_points: Tuple[Point2D, ...]
    point_spacing: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "id_points", _copy_points(self.id_points))
        object.__setattr__(
            self, "alignment_points", _copy_points(self.alignment_points)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id_points": [p.to_tuple() for p in self.id_points],
            "alignment_points": [p.to_tuple() for p in self.alignment_points],
            "point_spacing": self.point_spacing,
        }


@dataclass(frozen=True)
class ImageParameters:
    """
    Grid coordinate model of a rectified image.

    Attributes:
        grid_x_origin: Grid origin x in pixels.
        grid_y_origin: Grid origin y in pixels.
        grid_x_scale: Pixels per grid column (grid coordinates are in
            hundredths of a cell, so one grid unit is scale / 100 pixels).
        grid_y_scale: Pixels per grid row.
        is_horizontal: Document is landscape in the rectified image.
        is_inverted: Document is upside down / rotated left.
    """

    grid_x_origin: float
    grid_y_origin: float
    grid_x_scale: float
    grid_y_scale: float
    is_horizontal: bool
    is_inverted: bool

    @property
    def orientation(self) -> Orientation:
        return Orientation.from_flags(self.is_horizontal, self.is_inverted)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grid_x_origin": self.grid_x_origin,
            "grid_y_origin": self.grid_y_origin,
            "grid_x_scale": self.grid_x_scale,
            "grid_y_scale": self.grid_y_scale,
            "is_horizontal": self.is_horizontal,
            "is_inverted": self.is_inverted,
        }


@dataclass
class RectificationResult:
    """
    Output from the rectification pipeline.

    Attributes:
        decision: PASS or FAIL status.
        rectified_image: Corrected BGRA bitmap (None if the pass failed).
        image_parameters: Grid coordinate model (None if the pass failed).
        code_parameters: Final marker positions (None if the pass failed).
        page_id: Identifier text, set as soon as it was decoded.
        failure_reason: Specific reason if failed, NONE otherwise.
        message: Detail of the failure, empty on success.
    """

    decision: DecisionStatus
    rectified_image: Optional[np.ndarray] = None
    image_parameters: Optional[ImageParameters] = None
    code_parameters: Optional[CodeParameters] = None
    page_id: Optional[str] = None
    failure_reason: FailureReason = FailureReason.NONE
    message: str = field(default="")

    def is_pass(self) -> bool:
        """Check if the pipeline passed."""
        return self.decision == DecisionStatus.PASS

    def get_error_message(self) -> str:
        """Get human-readable error message."""
        if self.is_pass():
            return "Rectification succeeded"

        reason_messages = {
            FailureReason.INVALID_INPUT: "Marker detections are malformed",
            FailureReason.SCAN_FAILURE: "Markers could not be re-scanned in the photo",
            FailureReason.GEOMETRY_FAILURE: "Marker placement is geometrically degenerate",
        }
        base = reason_messages.get(
            self.failure_reason, f"Failed: {self.failure_reason.value}"
        )
        return f"{base}: {self.message}" if self.message else base
