"""
Rectification module: turns a photo with two page markers into an
upright, fronto-parallel bitmap with a grid coordinate model.

Pipeline stages:
1. Preview-to-photo remapping of first-pass detections
2. Precision re-location of both markers
3. Orientation & control-point inference
4. Corrective transform
5. Grid coordinate model and resampling
"""

from dualmark.rectification.config_loader import load_config
from dualmark.rectification.errors import (
    GeometryFailureError,
    InvalidInputError,
    RectificationError,
    ScanFailureError,
)
from dualmark.rectification.grid import (
    compute_image_parameters,
    grid_to_pixel,
    pixel_to_grid,
)
from dualmark.rectification.processor import (
    RectificationProcessor,
    process_rectification,
)
from dualmark.rectification.types import (
    CodeParameters,
    DecisionStatus,
    FailureReason,
    ImageParameters,
    Orientation,
    RectificationConfig,
    RectificationResult,
)
from dualmark.rectification.worker import ImageParserCallback, RectificationWorker

__all__ = [
    "RectificationProcessor",
    "RectificationWorker",
    "ImageParserCallback",
    "process_rectification",
    "load_config",
    "compute_image_parameters",
    "grid_to_pixel",
    "pixel_to_grid",
    "RectificationError",
    "InvalidInputError",
    "ScanFailureError",
    "GeometryFailureError",
    "CodeParameters",
    "DecisionStatus",
    "FailureReason",
    "ImageParameters",
    "Orientation",
    "RectificationConfig",
    "RectificationResult",
]
