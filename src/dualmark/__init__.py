"""
dualmark: rectification of photographed documents carrying two QR markers.

An identifier marker encodes the page id and an alignment marker encodes
the document's grid dimensions (``<columns>x<rows>``). Given a photo and
the approximate marker positions from a first-pass scan, the pipeline
re-locates both markers, infers the document's rotation, orientation and
missing corners, warps the photo into an axis-aligned bitmap and derives
a grid <-> pixel coordinate model.
"""

__version__ = "0.1.0"
