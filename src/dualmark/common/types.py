"""
Common type definitions for the dual-marker rectification pipeline.

This module provides Pydantic-based type definitions for the core data
structures used throughout the pipeline: points, pixel rectangles and
image buffers.

These types provide:
- Type validation and conversion
- Value semantics (points are immutable and never aliased)
- Helper methods for common operations
- Integration with numpy arrays and OpenCV
"""

import math
from typing import Optional, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator


class Point2D(BaseModel):
    """
    Immutable 2D point (x, y) in floating-point pixel or grid coordinates.

    Points are value types: every transform returns new instances, so a
    point held by one structure can never be modified through another.

    Attributes:
        x: X-coordinate (horizontal).
        y: Y-coordinate (vertical).

    Example:
        >>> p = Point2D(x=100, y=200.5)
        >>> p.translated(10, -0.5)
        Point2D(x=110.0, y=200.0)
    """

    x: float = Field(..., description="X-coordinate (horizontal)")
    y: float = Field(..., description="Y-coordinate (vertical)")

    model_config = {"frozen": True}

    @field_validator("x", "y", mode="before")
    @classmethod
    def _convert_to_float(cls, v: Union[int, float, np.number]) -> float:
        """Accept Python and numpy numbers, store as float."""
        if isinstance(v, (int, float, np.number)) and not isinstance(v, bool):
            return float(v)
        raise ValueError(f"Coordinate must be numeric, got {type(v)}")

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Point2D":
        """
        Create Point2D from numpy array.

        Args:
            arr: Numpy array of shape (2,) with [x, y] coordinates.

        Raises:
            ValueError: If array shape is not (2,).
        """
        arr = np.asarray(arr)
        if arr.shape != (2,):
            raise ValueError(f"Expected array of shape (2,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]))

    @classmethod
    def from_list(cls, coords: Union[list, tuple]) -> "Point2D":
        """Create Point2D from a 2-element list or tuple [x, y]."""
        if len(coords) != 2:
            raise ValueError(f"Expected list with 2 elements, got {len(coords)}")
        return cls(x=coords[0], y=coords[1])

    def to_numpy(self, dtype: type = np.float64) -> np.ndarray:
        """Convert to a numpy array of shape (2,)."""
        return np.array([self.x, self.y], dtype=dtype)

    def to_tuple(self) -> Tuple[float, float]:
        """Convert to tuple (x, y)."""
        return (self.x, self.y)

    def translated(self, dx: float, dy: float) -> "Point2D":
        """Return a new point offset by (dx, dy)."""
        return Point2D(x=self.x + dx, y=self.y + dy)

    def distance_to(self, other: "Point2D") -> float:
        """Euclidean distance to another point."""
        return float(np.hypot(self.x - other.x, self.y - other.y))

    def __add__(self, other: "Point2D") -> "Point2D":
        """Add two points (vector addition)."""
        return Point2D(x=self.x + other.x, y=self.y + other.y)

    def __sub__(self, other: "Point2D") -> "Point2D":
        """Subtract two points (vector subtraction)."""
        return Point2D(x=self.x - other.x, y=self.y - other.y)

    def __repr__(self) -> str:
        return f"Point2D(x={self.x}, y={self.y})"


class PixelRect(BaseModel):
    """
    Integer pixel rectangle [left, top, right, bottom), right/bottom exclusive.

    Used for the marker search windows carved out of the full-resolution
    photo.

    Example:
        >>> rect = PixelRect(left=0, top=10, right=100, bottom=60)
        >>> rect.width, rect.height
        (100, 50)
    """

    left: int = Field(..., description="Left edge (inclusive)")
    top: int = Field(..., description="Top edge (inclusive)")
    right: int = Field(..., description="Right edge (exclusive)")
    bottom: int = Field(..., description="Bottom edge (exclusive)")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _validate_rect(self) -> "PixelRect":
        """Reject empty or inverted rectangles."""
        if self.left >= self.right:
            raise ValueError(
                f"Invalid rect: left ({self.left}) must be < right ({self.right})"
            )
        if self.top >= self.bottom:
            raise ValueError(
                f"Invalid rect: top ({self.top}) must be < bottom ({self.bottom})"
            )
        return self

    @classmethod
    def from_bounds(
        cls, left: float, top: float, right: float, bottom: float
    ) -> "PixelRect":
        """Create a rectangle from float bounds, rounding each edge half-up."""
        return cls(
            left=math.floor(left + 0.5),
            top=math.floor(top + 0.5),
            right=math.floor(right + 0.5),
            bottom=math.floor(bottom + 0.5),
        )

    @property
    def width(self) -> int:
        """Rectangle width (right - left)."""
        return self.right - self.left

    @property
    def height(self) -> int:
        """Rectangle height (bottom - top)."""
        return self.bottom - self.top

    @property
    def origin(self) -> Point2D:
        """Top-left corner as a point."""
        return Point2D(x=self.left, y=self.top)

    def intersection(self, other: "PixelRect") -> Optional["PixelRect"]:
        """
        Overlap with another rectangle.

        Returns:
            New PixelRect, or None when the rectangles do not overlap.
        """
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if left >= right or top >= bottom:
            return None
        return PixelRect(left=left, top=top, right=right, bottom=bottom)

    def crop(self, image: np.ndarray) -> np.ndarray:
        """Return the view of ``image`` covered by this rectangle."""
        return image[self.top : self.bottom, self.left : self.right]

    def __repr__(self) -> str:
        return (
            f"PixelRect(left={self.left}, top={self.top}, "
            f"right={self.right}, bottom={self.bottom})"
        )


class ImageBuffer(BaseModel):
    """
    Type-safe wrapper for image arrays with one-shot ownership.

    The rectification pass owns its source photo exclusively. Once the
    corrected bitmap has been produced the buffer is released, and any
    later attempt to read it raises ``RuntimeError``.

    Attributes:
        data: The underlying numpy array containing image data.
            Shape: (H, W, C) for color images, (H, W) for grayscale.
            Dtype: uint8 (0-255).

    Example:
        >>> img_buffer = ImageBuffer(data=cv2.imread("page.jpg"))
        >>> img_buffer.width, img_buffer.height
        (3024, 4032)
    """

    data: Optional[np.ndarray] = Field(..., description="Image data as numpy array")

    model_config = {"arbitrary_types_allowed": True}

    _released: bool = PrivateAttr(default=False)

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """Accept only non-empty uint8 photos with 1, 3 or 4 channels."""
        if not isinstance(v, np.ndarray) or v.size == 0:
            raise ValueError("Photo must be a non-empty numpy array")
        channels = v.shape[2] if v.ndim == 3 else 1
        if v.ndim not in (2, 3) or channels not in (1, 3, 4):
            raise ValueError(f"Unsupported photo shape {v.shape}")
        if v.dtype != np.uint8:
            raise ValueError(f"Photo must be uint8, got {v.dtype}")
        return v

    @property
    def is_released(self) -> bool:
        """True once the buffer has been consumed."""
        return self._released

    @property
    def height(self) -> int:
        """Image height in pixels."""
        return int(self.to_numpy().shape[0])

    @property
    def width(self) -> int:
        """Image width in pixels."""
        return int(self.to_numpy().shape[1])

    @property
    def channels(self) -> int:
        """Number of channels (1 for grayscale, 3 for BGR, 4 for BGRA)."""
        shape = self.to_numpy().shape
        if len(shape) == 2:
            return 1
        return int(shape[2])

    def to_numpy(self) -> np.ndarray:
        """
        Get underlying numpy array.

        Raises:
            RuntimeError: If the buffer has already been released.
        """
        if self._released or self.data is None:
            raise RuntimeError("Image buffer has been released")
        return self.data

    def release(self) -> None:
        """Invalidate the buffer and drop the array reference."""
        self.data = None
        self._released = True

    def __repr__(self) -> str:
        if self._released:
            return "ImageBuffer(released)"
        return f"ImageBuffer(shape={self.data.shape}, dtype={self.data.dtype})"
