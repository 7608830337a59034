"""
Data types for the Markers module.

Provides containers for raw decoder output and classified markers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

from dualmark.common.types import Point2D

# Finder-pattern corners retained per marker: bottom-left, top-left, top-right
FINDER_POINT_COUNT = 3


class MarkerRole(Enum):
    """Role of a marker on the page, decided by its text."""

    IDENTIFIER = "identifier"  # Free-form page id
    DIMENSIONS = "dimensions"  # "<columns>x<rows>" alignment marker


@dataclass(frozen=True)
class DecoderHints:
    """
    Effort hints passed to the marker decoder.

    Attributes:
        qr_only: Restrict decoding to the QR matrix-barcode format.
        try_harder: Spend extra effort (e.g. a second, upscaled attempt).
        upscale_factor: Scale used for the try-harder attempt.
    """

    qr_only: bool = True
    try_harder: bool = True
    upscale_factor: float = 2.0


@dataclass(frozen=True)
class MarkerDetection:
    """
    A single decoded marker.

    Attributes:
        points: Corner points in decoder order (bottom-left, top-left,
            top-right, ...). After preview remapping this holds the
            original points followed by the remapped ones.
        text: Decoded marker text.
    """

    points: Tuple[Point2D, ...]
    text: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))

    def with_appended_points(self, points: Sequence[Point2D]) -> "MarkerDetection":
        """Return a new detection with ``points`` added after the existing ones."""
        return MarkerDetection(points=self.points + tuple(points), text=self.text)

    def distal_points(self) -> Tuple[Point2D, ...]:
        """Second half of the point sequence (the most recently appended set)."""
        return self.points[len(self.points) // 2 :]


@dataclass(frozen=True)
class ClassifiedMarker:
    """
    A marker with its role resolved and its finder corners in photo space.

    Attributes:
        role: IDENTIFIER or DIMENSIONS.
        text: Raw decoded text.
        columns: Grid columns for a DIMENSIONS marker (None if unparsable).
        rows: Grid rows for a DIMENSIONS marker (None if unparsable).
        points: Exactly 3 points: 0 = bottom-left, 1 = top-left, 2 = top-right.
    """

    role: MarkerRole
    text: str
    columns: Optional[int] = None
    rows: Optional[int] = None
    points: Tuple[Point2D, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        points = tuple(self.points)
        if len(points) != FINDER_POINT_COUNT:
            raise ValueError(
                f"Classified marker needs exactly {FINDER_POINT_COUNT} points, "
                f"got {len(points)}"
            )
        object.__setattr__(self, "points", points)

    @property
    def is_identifier(self) -> bool:
        return self.role == MarkerRole.IDENTIFIER

    @property
    def has_dimensions(self) -> bool:
        """True when columns and rows were parsed and are positive."""
        return (
            self.role == MarkerRole.DIMENSIONS
            and self.columns is not None
            and self.rows is not None
            and self.columns > 0
            and self.rows > 0
        )
