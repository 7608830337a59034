"""
Marker decoding.

Defines the decoder interface the rectification pipeline depends on and a
default implementation backed by OpenCV's QR code detector.
"""

import logging
from typing import List, Optional, Protocol, runtime_checkable

import cv2
import numpy as np

from dualmark.common.geometry import array_to_points
from dualmark.markers.types import DecoderHints, MarkerDetection

logger = logging.getLogger(__name__)

# Number of markers a preview frame must contain to be usable
MARKERS_PER_PAGE = 2


@runtime_checkable
class MarkerDecoder(Protocol):
    """
    Decodes a single marker inside an image region.

    Implementations may be stateful; callers invoke ``reset()`` after
    every ``decode()`` call.
    """

    def decode(self, region: np.ndarray) -> Optional[MarkerDetection]:
        """Return the marker found in ``region`` or None."""
        ...

    def reset(self) -> None:
        """Clear any internal state left by the previous decode."""
        ...


@runtime_checkable
class MultiMarkerDecoder(MarkerDecoder, Protocol):
    """A decoder that can also report every marker in a frame."""

    def decode_multiple(self, image: np.ndarray) -> List[MarkerDetection]:
        """Return all markers found in ``image`` (possibly empty)."""
        ...


def _to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert BGR/BGRA/single-channel input to a 2D luminance image."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 1:
        return image[:, :, 0]
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def _finder_points(quad: np.ndarray, scale: float = 1.0) -> tuple:
    """
    Reorder an OpenCV QR quad into the finder convention.

    OpenCV reports [top-left, top-right, bottom-right, bottom-left] in the
    code's own frame; the pipeline expects [bottom-left, top-left,
    top-right].
    """
    quad = np.asarray(quad, dtype=np.float64).reshape(-1, 2) / scale
    if quad.shape != (4, 2):
        raise ValueError(f"Expected a 4-point QR quad, got shape {quad.shape}")
    # Outer code corners, not finder-pattern centres: spacing spans the full code side
    return array_to_points(quad[[3, 0, 1]])


class OpenCVMarkerDecoder:
    """
    QR marker decoder using ``cv2.QRCodeDetector``.

    Example:
        >>> decoder = OpenCVMarkerDecoder()
        >>> detection = decoder.decode(cv2.imread("marker.png"))
        >>> detection.text if detection else None
        '12x8'
    """

    def __init__(self, hints: Optional[DecoderHints] = None):
        self.hints = hints or DecoderHints()
        self._detector = cv2.QRCodeDetector()

    def decode(self, region: np.ndarray) -> Optional[MarkerDetection]:
        """
        Decode the single marker inside ``region``.

        With ``try_harder`` a failed first attempt is retried on an
        upscaled copy; the returned points are always in ``region``
        coordinates.
        """
        gray = _to_grayscale(region)
        detection = self._decode_once(gray, scale=1.0)

        if detection is None and self.hints.try_harder:
            factor = self.hints.upscale_factor
            logger.debug(f"Retrying decode on region upscaled by {factor}")
            upscaled = cv2.resize(
                gray, None, fx=factor, fy=factor, interpolation=cv2.INTER_CUBIC
            )
            detection = self._decode_once(upscaled, scale=factor)

        return detection

    def decode_multiple(self, image: np.ndarray) -> List[MarkerDetection]:
        """Decode every marker in ``image``; undecodable codes are skipped."""
        gray = _to_grayscale(image)
        try:
            ok, texts, quads, _ = self._detector.detectAndDecodeMulti(gray)
        except cv2.error as e:
            logger.debug(f"Multi-marker decode failed: {e}")
            return []

        if not ok or quads is None:
            return []

        detections = []
        for text, quad in zip(texts, quads):
            if text:
                detections.append(
                    MarkerDetection(points=_finder_points(quad), text=text)
                )
        return detections

    def reset(self) -> None:
        """Start the next decode with a fresh detector."""
        self._detector = cv2.QRCodeDetector()

    def _decode_once(self, gray: np.ndarray, scale: float) -> Optional[MarkerDetection]:
        try:
            text, quad, _ = self._detector.detectAndDecode(gray)
        except cv2.error as e:
            logger.debug(f"Marker decode failed: {e}")
            return None

        if not text or quad is None:
            return None
        return MarkerDetection(points=_finder_points(quad, scale), text=text)


def scan_preview(
    frame: np.ndarray, decoder: MultiMarkerDecoder
) -> Optional[List[MarkerDetection]]:
    """
    First-pass scan of a (low resolution) preview frame.

    Returns:
        The two marker detections, or None unless exactly two markers
        were decoded.
    """
    try:
        detections = decoder.decode_multiple(frame)
    finally:
        decoder.reset()

    if len(detections) != MARKERS_PER_PAGE:
        logger.debug(f"Preview scan found {len(detections)} markers, need 2")
        return None

    logger.info(f"Found {MARKERS_PER_PAGE} markers in preview frame")
    return detections

