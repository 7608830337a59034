"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.

The shared scenario is an upright page photographed at 1000x1400 pixels
with a 500x700 preview frame:

- identifier marker "p1" with finder corners (100,1300), (100,1200), (200,1200)
- alignment marker "4x6" with finder corners (400,800), (400,700), (500,700)
"""

from collections import deque
from typing import List, Optional

import numpy as np
import pytest

from dualmark.common.types import Point2D
from dualmark.markers.types import MarkerDetection

PHOTO_SIZE = (1000, 1400)

ID_PHOTO_POINTS = [(100, 1300), (100, 1200), (200, 1200)]
ALIGN_PHOTO_POINTS = [(400, 800), (400, 700), (500, 700)]

# Origins of the search windows the re-locator carves around each marker
ID_WINDOW_ORIGIN = (0, 1060)
ALIGN_WINDOW_ORIGIN = (260, 560)


def make_points(coords) -> tuple:
    """Build a tuple of Point2D from (x, y) pairs."""
    return tuple(Point2D(x=x, y=y) for x, y in coords)


def relative_to(coords, origin) -> list:
    """Express photo coordinates relative to a window origin."""
    ox, oy = origin
    return [(x - ox, y - oy) for x, y in coords]


class FakeDecoder:
    """
    Deterministic marker decoder returning queued detections.

    Records the shape of every region it was asked to decode and the
    number of resets, so tests can check the decoder contract.
    """

    def __init__(self, detections: Optional[List[Optional[MarkerDetection]]] = None):
        self._queue = deque(detections or [])
        self.regions = []
        self.multi_frames = []
        self.reset_count = 0
        self.multi_result: List[MarkerDetection] = []

    def decode(self, region: np.ndarray) -> Optional[MarkerDetection]:
        self.regions.append(region.shape)
        if not self._queue:
            return None
        return self._queue.popleft()

    def decode_multiple(self, image: np.ndarray) -> List[MarkerDetection]:
        self.multi_frames.append(image.shape)
        return list(self.multi_result)

    def reset(self) -> None:
        self.reset_count += 1


@pytest.fixture
def photo():
    """Fixture providing a 1000x1400 BGR photo with random texture."""
    rng = np.random.default_rng(seed=7)
    return rng.integers(0, 256, size=(PHOTO_SIZE[1], PHOTO_SIZE[0], 3), dtype=np.uint8)


@pytest.fixture
def id_points():
    """Identifier finder corners in photo space."""
    return make_points(ID_PHOTO_POINTS)


@pytest.fixture
def alignment_points():
    """Alignment finder corners in photo space."""
    return make_points(ALIGN_PHOTO_POINTS)


@pytest.fixture
def preview_detections():
    """First-pass detections as found on the 500x700 preview."""
    return [
        MarkerDetection(
            points=make_points([(x / 2, y / 2) for x, y in ID_PHOTO_POINTS]),
            text="p1",
        ),
        MarkerDetection(
            points=make_points([(x / 2, y / 2) for x, y in ALIGN_PHOTO_POINTS]),
            text="4x6",
        ),
    ]


@pytest.fixture
def window_detections():
    """Detections the re-scan returns, relative to each search window."""
    return [
        MarkerDetection(
            points=make_points(relative_to(ID_PHOTO_POINTS, ID_WINDOW_ORIGIN)),
            text="p1",
        ),
        MarkerDetection(
            points=make_points(relative_to(ALIGN_PHOTO_POINTS, ALIGN_WINDOW_ORIGIN)),
            text="4x6",
        ),
    ]


@pytest.fixture
def fake_decoder(window_detections):
    """Decoder that finds both markers in their search windows."""
    return FakeDecoder(window_detections)


@pytest.fixture
def make_decoder():
    """Factory fixture building a FakeDecoder from queued detections."""
    return FakeDecoder
