"""
Failure taxonomy of a rectification pass.

Every error is terminal for the pass it occurs in; retrying means taking
a new photo. The processor turns these into a FAIL result so that no
exception reaches the caller.
"""

from dualmark.rectification.types import FailureReason


class RectificationError(Exception):
    """Base class for pipeline failures."""

    reason = FailureReason.NONE


class InvalidInputError(RectificationError):
    """Malformed marker point counts, frame sizes or photo buffer."""

    reason = FailureReason.INVALID_INPUT


class ScanFailureError(RectificationError):
    """A marker was not found, or a required marker role is missing."""

    reason = FailureReason.SCAN_FAILURE


class GeometryFailureError(RectificationError):
    """Near-parallel marker edges or an undefined rotation estimate."""

    reason = FailureReason.GEOMETRY_FAILURE
