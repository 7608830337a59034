"""
Unit tests for the common point, rectangle and image buffer types.
"""

import numpy as np
import pytest
from pydantic import ValidationError

from dualmark.common.types import ImageBuffer, PixelRect, Point2D


class TestPoint2D:
    """Tests for Point2D."""

    def test_accepts_numpy_numbers(self):
        p = Point2D(x=np.float32(1.5), y=np.int64(2))
        assert p.x == 1.5
        assert p.y == 2.0
        assert isinstance(p.y, float)

    def test_rejects_bool(self):
        with pytest.raises(ValidationError):
            Point2D(x=True, y=0)

    def test_is_immutable(self):
        p = Point2D(x=1, y=2)
        with pytest.raises(ValidationError):
            p.x = 5

    def test_translated_returns_new_point(self):
        p = Point2D(x=1, y=2)
        q = p.translated(10, -2)
        assert q == Point2D(x=11, y=0)
        assert p == Point2D(x=1, y=2)

    def test_from_numpy_and_back(self):
        p = Point2D.from_numpy(np.array([3.0, 4.0]))
        assert p.to_tuple() == (3.0, 4.0)
        np.testing.assert_array_equal(p.to_numpy(), [3.0, 4.0])

    def test_from_numpy_wrong_shape(self):
        with pytest.raises(ValueError):
            Point2D.from_numpy(np.array([1.0, 2.0, 3.0]))

    def test_arithmetic_and_distance(self):
        a = Point2D(x=0, y=0)
        b = Point2D(x=3, y=4)
        assert (a + b) == b
        assert (b - b) == a
        assert a.distance_to(b) == pytest.approx(5.0)


class TestPixelRect:
    """Tests for PixelRect."""

    def test_dimensions(self):
        rect = PixelRect(left=0, top=10, right=100, bottom=60)
        assert rect.width == 100
        assert rect.height == 50
        assert rect.origin == Point2D(x=0, y=10)

    def test_empty_rect_rejected(self):
        with pytest.raises(ValidationError):
            PixelRect(left=10, top=0, right=10, bottom=5)

    def test_from_bounds_rounds_half_up(self):
        rect = PixelRect.from_bounds(0.5, 1.4, 10.5, 20.6)
        assert (rect.left, rect.top, rect.right, rect.bottom) == (1, 1, 11, 21)

    def test_intersection(self):
        a = PixelRect(left=0, top=0, right=10, bottom=10)
        b = PixelRect(left=5, top=5, right=20, bottom=20)
        assert a.intersection(b) == PixelRect(left=5, top=5, right=10, bottom=10)
        assert a.intersection(PixelRect(left=10, top=0, right=12, bottom=5)) is None

    def test_crop(self):
        image = np.arange(100, dtype=np.uint8).reshape(10, 10)
        crop = PixelRect(left=2, top=3, right=5, bottom=7).crop(image)
        assert crop.shape == (4, 3)
        assert crop[0, 0] == 32


class TestImageBuffer:
    """Tests for ImageBuffer."""

    def test_valid_color_image(self):
        buffer = ImageBuffer(data=np.zeros((40, 30, 3), dtype=np.uint8))
        assert (buffer.width, buffer.height, buffer.channels) == (30, 40, 3)

    def test_grayscale_channels(self):
        buffer = ImageBuffer(data=np.zeros((4, 3), dtype=np.uint8))
        assert buffer.channels == 1

    def test_rejects_float_image(self):
        with pytest.raises(ValidationError):
            ImageBuffer(data=np.zeros((4, 4, 3), dtype=np.float32))

    def test_rejects_two_channels(self):
        with pytest.raises(ValidationError):
            ImageBuffer(data=np.zeros((4, 4, 2), dtype=np.uint8))

    def test_release_is_one_shot(self):
        buffer = ImageBuffer(data=np.zeros((4, 4), dtype=np.uint8))
        buffer.release()

        assert buffer.is_released
        with pytest.raises(RuntimeError):
            buffer.to_numpy()
        assert repr(buffer) == "ImageBuffer(released)"
