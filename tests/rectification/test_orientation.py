"""
Unit tests for orientation and control-point inference.
"""

import pytest

from dualmark.common.geometry import rotate_point, rotate_points
from dualmark.common.types import Point2D
from dualmark.rectification.errors import GeometryFailureError
from dualmark.rectification.orientation import (
    analyse_markers,
    calculate_spacing,
    classify_orientation,
    estimate_rotation,
    infer_control_points,
)
from dualmark.rectification.types import Orientation

CENTRE = Point2D(x=500, y=700)


def _points(coords):
    return tuple(Point2D(x=x, y=y) for x, y in coords)


def _rotated(id_points, alignment_points, angle):
    """Rotate both markers of the upright scenario about the photo centre."""
    return (
        rotate_points(id_points, angle, CENTRE),
        rotate_points(alignment_points, angle, CENTRE),
    )


class TestEstimateRotation:
    """Tests for estimate_rotation."""

    def test_upright_page(self, id_points, alignment_points):
        assert estimate_rotation(id_points, alignment_points) == pytest.approx(0.0)

    @pytest.mark.parametrize("angle", [10.0, -25.0, 90.0, -90.0])
    def test_rotation_is_undone(self, id_points, alignment_points, angle):
        """The estimate is the angle that turns the page back upright."""
        ids, aligns = _rotated(id_points, alignment_points, angle)
        assert estimate_rotation(ids, aligns) == pytest.approx(-angle)

    def test_upside_down(self, id_points, alignment_points):
        ids, aligns = _rotated(id_points, alignment_points, 180.0)
        assert abs(estimate_rotation(ids, aligns)) == pytest.approx(180.0)

    def test_noisy_corners_are_averaged(self):
        ids = _points([(100, 1300), (100, 1200), (200, 1200)])
        aligns = _points([(400, 800), (400, 700), (500, 703)])
        rotation = estimate_rotation(ids, aligns)
        assert -2.0 < rotation < 0.0

    def test_cancelling_markers_fail(self, id_points):
        """An upright identifier and an upside-down alignment marker cancel out."""
        aligns = _points([(400, 600), (400, 700), (300, 700)])
        with pytest.raises(GeometryFailureError):
            estimate_rotation(id_points, aligns)


class TestInferControlPoints:
    """Tests for infer_control_points."""

    def test_upright_page(self, id_points, alignment_points):
        top_left, bottom_right = infer_control_points(id_points, alignment_points)

        assert top_left.to_tuple() == pytest.approx((100.0, 700.0))
        assert bottom_right.to_tuple() == pytest.approx((400.0, 1200.0))

    def test_points_rotate_with_page(self, id_points, alignment_points):
        ids, aligns = _rotated(id_points, alignment_points, 30.0)

        top_left, bottom_right = infer_control_points(ids, aligns)

        expected_tl = rotate_point(Point2D(x=100, y=700), 30.0, CENTRE)
        expected_br = rotate_point(Point2D(x=400, y=1200), 30.0, CENTRE)
        assert top_left.to_tuple() == pytest.approx(expected_tl.to_tuple())
        assert bottom_right.to_tuple() == pytest.approx(expected_br.to_tuple())

    def test_parallel_edges_fail(self):
        ids = _points([(0, 10), (0, 0), (10, 0)])
        aligns = _points([(110, 0), (100, 0), (100, 10)])
        with pytest.raises(GeometryFailureError):
            infer_control_points(ids, aligns)


class TestClassifyOrientation:
    """Tests for classify_orientation."""

    @pytest.mark.parametrize(
        "angle,expected",
        [
            (0.0, Orientation.NORMAL_PORTRAIT),
            (180.0, Orientation.INVERTED_PORTRAIT),
            (90.0, Orientation.LEFT_LANDSCAPE),
            (-90.0, Orientation.RIGHT_LANDSCAPE),
        ],
    )
    def test_quarter_turns(self, id_points, alignment_points, angle, expected):
        ids, aligns = _rotated(id_points, alignment_points, angle)
        orientation = classify_orientation(ids, aligns)

        assert orientation == expected
        assert orientation is Orientation.from_flags(
            expected.is_horizontal, expected.is_inverted
        )


class TestCalculateSpacing:
    """Tests for calculate_spacing."""

    def test_portrait(self, id_points, alignment_points):
        assert calculate_spacing(id_points, alignment_points, False) == pytest.approx(100.0)

    def test_landscape_uses_swapped_axes(self, id_points, alignment_points):
        ids, aligns = _rotated(id_points, alignment_points, 90.0)
        assert calculate_spacing(ids, aligns, True) == pytest.approx(100.0)


class TestAnalyseMarkers:
    """Tests for analyse_markers."""

    def test_upright_scenario(self, id_points, alignment_points):
        geometry = analyse_markers(id_points, alignment_points)

        assert geometry.rotation == pytest.approx(0.0)
        assert geometry.orientation == Orientation.NORMAL_PORTRAIT
        assert geometry.top_left.to_tuple() == pytest.approx((100.0, 700.0))
        assert geometry.bottom_right.to_tuple() == pytest.approx((400.0, 1200.0))
        assert geometry.spacing == pytest.approx(100.0)
