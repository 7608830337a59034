"""
Markers module: decoding and role classification of the two page markers.

The identifier marker carries the page id; the alignment marker carries
the grid dimensions as ``(sc)?<columns>x<rows>``.
"""

from dualmark.markers.classifier import (
    DIMENSIONS_PATTERN,
    classify_marker,
    classify_marker_text,
    parse_dimensions,
)
from dualmark.markers.decoder import (
    MarkerDecoder,
    MultiMarkerDecoder,
    OpenCVMarkerDecoder,
    scan_preview,
)
from dualmark.markers.types import (
    ClassifiedMarker,
    DecoderHints,
    MarkerDetection,
    MarkerRole,
)

__all__ = [
    "DIMENSIONS_PATTERN",
    "ClassifiedMarker",
    "DecoderHints",
    "MarkerDecoder",
    "MarkerDetection",
    "MarkerRole",
    "MultiMarkerDecoder",
    "OpenCVMarkerDecoder",
    "classify_marker",
    "classify_marker_text",
    "parse_dimensions",
    "scan_preview",
]
