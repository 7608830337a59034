"""
Main processor for the Rectification module.

Orchestrates the complete pass:
1. Preview-to-photo remapping of first-pass detections
2. Precision re-location of both markers
3. Orientation & control-point inference
4. Corrective transform and final marker positions
5. Grid coordinate model and bitmap resampling

Implements fail-fast strategy: stops at first failure.
"""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from dualmark.common.types import ImageBuffer
from dualmark.markers.decoder import MarkerDecoder, OpenCVMarkerDecoder
from dualmark.markers.types import MarkerDetection
from dualmark.rectification.config_loader import (
    INTERPOLATION_FLAGS,
    decoder_hints,
    load_config,
)
from dualmark.rectification.errors import InvalidInputError, RectificationError
from dualmark.rectification.grid import compute_image_parameters
from dualmark.rectification.orientation import analyse_markers, calculate_spacing
from dualmark.rectification.rectifier import (
    build_correction,
    finalise_marker_points,
    rectify_photo,
)
from dualmark.rectification.relocator import relocate_markers
from dualmark.rectification.remapper import flip_for_rotation, remap_preview_detections
from dualmark.rectification.types import (
    CodeParameters,
    DecisionStatus,
    RectificationConfig,
    RectificationResult,
)

logger = logging.getLogger(__name__)


def _as_buffer(photo: Union[np.ndarray, ImageBuffer]) -> ImageBuffer:
    """
    Wrap the photo in an ImageBuffer, checking it is still usable.

    Raises:
        InvalidInputError: If the array is not an image or the buffer was
            already released by an earlier pass.
    """
    if isinstance(photo, ImageBuffer):
        buffer = photo
    else:
        try:
            buffer = ImageBuffer(data=photo)
        except ValueError as e:
            raise InvalidInputError(f"Photo is not a usable image: {e}") from e
    if buffer.is_released:
        raise InvalidInputError("Photo buffer was already consumed by another pass")
    return buffer


class RectificationProcessor:
    """
    Main processor for dual-marker photo rectification.

    One call to ``process`` is one rectification pass. The pass owns the
    photo exclusively and releases it once the corrected bitmap exists.

    Example:
        >>> processor = RectificationProcessor()
        >>> result = processor.process(photo, detections, preview_size=(480, 640))
        >>> if result.is_pass():
        ...     cv2.imwrite("page.png", result.rectified_image)
    """

    def __init__(
        self,
        config: Optional[RectificationConfig] = None,
        config_path: Optional[Path] = None,
        decoder: Optional[MarkerDecoder] = None,
    ):
        """
        Initialize the rectification processor.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses default location.
            decoder: Marker decoder for the re-scan. Defaults to the OpenCV
                QR decoder configured from the ``decoder`` section.
        """
        if config is not None:
            self.config = config
            logger.info("Using provided configuration")
        else:
            self.config = load_config(config_path) if config_path else load_config()
            logger.info("Loaded configuration from file")

        self.decoder = decoder or OpenCVMarkerDecoder(decoder_hints(self.config))

    def process(
        self,
        photo: Union[np.ndarray, ImageBuffer],
        detections: Sequence[MarkerDetection],
        preview_size: Tuple[int, int],
        screen_rotation: int = 0,
        view_size: Optional[Tuple[int, int]] = None,
        resize_to_view: Optional[bool] = None,
        on_page_identified: Optional[Callable[[str], None]] = None,
    ) -> RectificationResult:
        """
        Execute the complete rectification pass.

        Args:
            photo: Full-resolution photo. An ImageBuffer is released when
                the pass has produced its bitmap.
            detections: The two first-pass detections, in preview space.
            preview_size: (width, height) of the preview frame.
            screen_rotation: Screen rotation in degrees at capture time.
            view_size: (width, height) of the target view; defaults to the
                configured view.
            resize_to_view: Scale the bitmap to the view width; defaults to
                the configured value.
            on_page_identified: Called with the page id as soon as both
                markers have been re-located.

        Returns:
            RectificationResult with the corrected bitmap and coordinate
            model, or a FAIL decision with the failure reason.
        """
        start = time.perf_counter()
        output = self.config.output
        if view_size is None:
            view_size = (output.view_width, output.view_height)
        if resize_to_view is None:
            resize_to_view = output.resize_to_view

        page_id: Optional[str] = None

        def _page_identified(text: str) -> None:
            nonlocal page_id
            page_id = text
            if on_page_identified is None:
                return
            try:
                on_page_identified(text)
            except Exception as e:
                logger.error(f"Error in page-identified hook: {e}", exc_info=True)

        logger.info("=" * 60)
        logger.info("Starting Rectification Pipeline")
        logger.info("=" * 60)

        try:
            buffer = _as_buffer(photo)
            image = buffer.to_numpy()
            photo_size = (buffer.width, buffer.height)

            # Stage 1: Preview-to-photo remapping
            logger.info("[Stage 1/5] Preview-to-Photo Remapping")
            flip_xy = flip_for_rotation(screen_rotation, self.config.remap.flip_rotations)
            try:
                remapped = remap_preview_detections(
                    detections, preview_size, photo_size, flip_xy
                )
            except ValueError as e:
                raise InvalidInputError(str(e)) from e

            # Stage 2: Precision re-location
            logger.info("[Stage 2/5] Marker Re-location")
            markers = relocate_markers(
                image,
                remapped,
                self.decoder,
                search_fraction=self.config.relocation.search_fraction,
                min_points=self.config.relocation.min_points,
                on_page_identified=_page_identified,
            )
            logger.info(
                f"Second scan: found codes in {(time.perf_counter() - start) * 1000:.0f}ms"
            )

            # Stage 3: Orientation & control points
            logger.info("[Stage 3/5] Orientation & Control-Point Inference")
            geometry = analyse_markers(markers.id_points, markers.alignment_points)

            # Stage 4: Corrective transform
            logger.info("[Stage 4/5] Corrective Transform")
            correction = build_correction(
                markers, geometry, photo_size, view_size, resize_to_view
            )
            id_points, alignment_points = finalise_marker_points(
                correction, markers.id_points, markers.alignment_points
            )
            spacing = calculate_spacing(
                id_points, alignment_points, geometry.orientation.is_horizontal
            )

            # Stage 5: Grid model and resampling
            logger.info("[Stage 5/5] Grid Model & Resampling")
            image_parameters = compute_image_parameters(
                id_points,
                alignment_points,
                markers.columns,
                markers.rows,
                geometry.orientation,
            )
            rectified = rectify_photo(
                buffer, correction, INTERPOLATION_FLAGS[output.interpolation]
            )

        except RectificationError as e:
            logger.warning(f"Pipeline FAILED: {e.reason.value} - {e}")
            return RectificationResult(
                decision=DecisionStatus.FAIL,
                page_id=page_id,
                failure_reason=e.reason,
                message=str(e),
            )

        logger.info("=" * 60)
        logger.info(
            f"Pipeline PASSED for page '{page_id}' in "
            f"{(time.perf_counter() - start) * 1000:.0f}ms"
        )
        logger.info("=" * 60)

        return RectificationResult(
            decision=DecisionStatus.PASS,
            rectified_image=rectified,
            image_parameters=image_parameters,
            code_parameters=CodeParameters(
                id_points=id_points,
                alignment_points=alignment_points,
                point_spacing=spacing,
            ),
            page_id=page_id,
        )


def process_rectification(
    photo: Union[np.ndarray, ImageBuffer],
    detections: Sequence[MarkerDetection],
    preview_size: Tuple[int, int],
    screen_rotation: int = 0,
    view_size: Optional[Tuple[int, int]] = None,
    config: Optional[RectificationConfig] = None,
    decoder: Optional[MarkerDecoder] = None,
) -> RectificationResult:
    """
    Convenience function for one-shot rectification.

    Example:
        >>> result = process_rectification(photo, detections, (480, 640))
        >>> print(result.get_error_message())
        Rectification succeeded
    """
    processor = RectificationProcessor(config=config, decoder=decoder)
    return processor.process(
        photo,
        detections,
        preview_size,
        screen_rotation=screen_rotation,
        view_size=view_size,
    )
