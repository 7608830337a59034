"""
Unit tests for full-resolution marker re-location.
"""

import pytest

from dualmark.common.types import PixelRect, Point2D
from dualmark.markers.types import MarkerDetection
from dualmark.rectification.errors import InvalidInputError, ScanFailureError
from dualmark.rectification.relocator import (
    decode_in_window,
    relocate_markers,
    search_window,
    validate_point_count,
)
from dualmark.rectification.remapper import remap_preview_detections


def _points(coords):
    return tuple(Point2D(x=x, y=y) for x, y in coords)


@pytest.fixture
def photo_detections(preview_detections):
    """First-pass detections already remapped into the 1000x1400 photo."""
    return remap_preview_detections(preview_detections, (500, 700), (1000, 1400))


class TestValidatePointCount:
    """Tests for validate_point_count."""

    def test_six_points_accepted(self, photo_detections):
        validate_point_count(photo_detections[0])

    @pytest.mark.parametrize("count", [4, 5, 7])
    def test_bad_counts_rejected(self, count):
        detection = MarkerDetection(points=_points([(0, 0)] * count), text="p1")
        with pytest.raises(InvalidInputError):
            validate_point_count(detection)


class TestSearchWindow:
    """Tests for search_window."""

    def test_window_grown_and_clipped(self, photo_detections):
        """Margin is 10% of the long side (140px); the bottom edge is clipped."""
        window = search_window(photo_detections[0], 1000, 1400)
        assert window == PixelRect(left=0, top=1060, right=340, bottom=1400)

    def test_interior_window(self, photo_detections):
        window = search_window(photo_detections[1], 1000, 1400)
        assert window == PixelRect(left=260, top=560, right=640, bottom=940)

    def test_only_distal_points_used(self):
        """The first (preview-space) half of the points does not widen the window."""
        detection = MarkerDetection(
            points=_points([(0, 0), (0, 0), (0, 0), (500, 500), (500, 510), (510, 500)]),
            text="p1",
        )
        window = search_window(detection, 1000, 1000, search_fraction=0.05)
        assert window == PixelRect(left=450, top=450, right=560, bottom=560)

    def test_window_outside_photo(self):
        detection = MarkerDetection(
            points=_points([(0, 0)] * 3 + [(5000, 5000)] * 3), text="p1"
        )
        with pytest.raises(ScanFailureError):
            search_window(detection, 1000, 1400)


class TestDecodeInWindow:
    """Tests for decode_in_window."""

    def test_translates_into_photo_space(self, photo, make_decoder):
        decoder = make_decoder(
            [MarkerDetection(points=_points([(10, 20), (10, 10), (20, 10)]), text="p1")]
        )
        window = PixelRect(left=100, top=200, right=300, bottom=400)

        marker = decode_in_window(photo, window, decoder)

        assert marker.points == _points([(110, 220), (110, 210), (120, 210)])
        assert decoder.regions == [(200, 200, 3)]
        assert decoder.reset_count == 1

    def test_not_found(self, photo, make_decoder):
        decoder = make_decoder([None])
        window = PixelRect(left=0, top=0, right=10, bottom=10)

        with pytest.raises(ScanFailureError):
            decode_in_window(photo, window, decoder)
        assert decoder.reset_count == 1

    def test_too_few_points(self, photo, make_decoder):
        decoder = make_decoder(
            [MarkerDetection(points=_points([(1, 1), (2, 2)]), text="p1")]
        )
        window = PixelRect(left=0, top=0, right=10, bottom=10)

        with pytest.raises(ScanFailureError):
            decode_in_window(photo, window, decoder)


class TestRelocateMarkers:
    """Tests for relocate_markers."""

    def test_both_markers_found(self, photo, photo_detections, fake_decoder, id_points, alignment_points):
        identified = []

        markers = relocate_markers(
            photo, photo_detections, fake_decoder, on_page_identified=identified.append
        )

        assert markers.page_id == "p1"
        assert (markers.columns, markers.rows) == (4, 6)
        assert markers.id_points == id_points
        assert markers.alignment_points == alignment_points
        assert identified == ["p1"]
        assert fake_decoder.regions == [(340, 340, 3), (380, 380, 3)]
        assert fake_decoder.reset_count == 2

    def test_roles_follow_text_not_order(self, photo, photo_detections, make_decoder, window_detections):
        """The alignment marker is recognised by its text wherever it appears."""
        ident, align = window_detections
        decoder = make_decoder(
            [
                MarkerDetection(points=align.points, text="4x6"),
                MarkerDetection(points=ident.points, text="p1"),
            ]
        )

        markers = relocate_markers(photo, photo_detections, decoder)

        assert markers.page_id == "p1"
        assert markers.columns == 4

    def test_missing_alignment_marker(self, photo, photo_detections, make_decoder, window_detections):
        ident, _ = window_detections
        identified = []
        decoder = make_decoder([ident, MarkerDetection(points=ident.points, text="p2")])

        with pytest.raises(ScanFailureError):
            relocate_markers(photo, photo_detections, decoder, on_page_identified=identified.append)
        assert identified == []

    def test_third_detection_rejected(self, photo, photo_detections, fake_decoder):
        """A second identifier alongside the pair is not a valid capture."""
        detections = photo_detections + [photo_detections[0]]

        with pytest.raises(ScanFailureError):
            relocate_markers(photo, detections, fake_decoder)
        assert fake_decoder.regions == []

    def test_single_detection_rejected(self, photo, photo_detections, fake_decoder):
        identified = []

        with pytest.raises(ScanFailureError):
            relocate_markers(
                photo, photo_detections[:1], fake_decoder, on_page_identified=identified.append
            )
        assert identified == []
        assert fake_decoder.regions == []

    def test_duplicate_identifier_rejected(self, photo, photo_detections, make_decoder, window_detections):
        """Two identifiers in the windows fail before any page id is reported."""
        ident, _ = window_detections
        identified = []
        decoder = make_decoder([ident, MarkerDetection(points=ident.points, text="p2")])

        with pytest.raises(ScanFailureError, match="two identifier"):
            relocate_markers(photo, photo_detections, decoder, on_page_identified=identified.append)
        assert identified == []

    def test_missing_identifier(self, photo, photo_detections, make_decoder, window_detections):
        _, align = window_detections
        decoder = make_decoder([MarkerDetection(points=align.points, text="2x2"), align])

        with pytest.raises(ScanFailureError):
            relocate_markers(photo, photo_detections, decoder)

    def test_unusable_dimensions(self, photo, photo_detections, make_decoder, window_detections):
        ident, align = window_detections
        decoder = make_decoder([ident, MarkerDetection(points=align.points, text="0x6")])

        with pytest.raises(ScanFailureError):
            relocate_markers(photo, photo_detections, decoder)

    def test_marker_not_found(self, photo, photo_detections, make_decoder, window_detections):
        decoder = make_decoder([window_detections[0], None])

        with pytest.raises(ScanFailureError):
            relocate_markers(photo, photo_detections, decoder)

    def test_invalid_point_count(self, photo, fake_decoder):
        detections = [MarkerDetection(points=_points([(1, 1)] * 5), text="p1")]

        with pytest.raises(InvalidInputError):
            relocate_markers(photo, detections, fake_decoder)
        assert fake_decoder.regions == []
