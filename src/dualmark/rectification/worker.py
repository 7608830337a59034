"""
Background worker running one rectification pass off the caller's thread.

Results are reported through an ``ImageParserCallback``: ``page_identified``
at most once, as soon as the page id is known, followed by exactly one of
``picture_succeeded`` or ``picture_failed``.
"""

import logging
import threading
from typing import Optional, Protocol, Sequence, Tuple, Union

import numpy as np

from dualmark.common.types import ImageBuffer
from dualmark.markers.types import MarkerDetection
from dualmark.rectification.processor import RectificationProcessor
from dualmark.rectification.types import (
    CodeParameters,
    ImageParameters,
    RectificationResult,
)

logger = logging.getLogger(__name__)


class ImageParserCallback(Protocol):
    """Receiver of rectification events."""

    def page_identified(self, page_id: str) -> None:
        ...

    def picture_succeeded(
        self,
        bitmap: np.ndarray,
        image_parameters: ImageParameters,
        code_parameters: CodeParameters,
    ) -> None:
        ...

    def picture_failed(self) -> None:
        ...


class RectificationWorker:
    """
    Runs a single rectification pass on a dedicated daemon thread.

    Example:
        >>> worker = RectificationWorker(callback)
        >>> worker.parse_image(photo, detections, preview_size=(480, 640))
        >>> worker.join(timeout=10)
    """

    def __init__(
        self,
        callback: ImageParserCallback,
        processor: Optional[RectificationProcessor] = None,
    ) -> None:
        self.callback = callback
        self.processor = processor or RectificationProcessor()
        self._thread: Optional[threading.Thread] = None

    def parse_image(
        self,
        photo: Union[np.ndarray, ImageBuffer],
        detections: Sequence[MarkerDetection],
        preview_size: Tuple[int, int],
        screen_rotation: int = 0,
        view_size: Optional[Tuple[int, int]] = None,
        resize_to_view: Optional[bool] = None,
    ) -> None:
        """
        Start the pass in the background and return immediately.

        Raises:
            RuntimeError: If a pass started by this worker is still running.
        """
        if self.is_running:
            raise RuntimeError("A rectification pass is already running")

        self._thread = threading.Thread(
            target=self._run,
            args=(photo, list(detections), preview_size),
            kwargs={
                "screen_rotation": screen_rotation,
                "view_size": view_size,
                "resize_to_view": resize_to_view,
            },
            name="rectification-worker",
            daemon=True,
        )
        self._thread.start()
        logger.info("Started rectification pass in background thread")

    @property
    def is_running(self) -> bool:
        """Check if a pass is currently active."""
        return self._thread is not None and self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the current pass to finish.

        Returns:
            True if no pass is running any more, False on timeout.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return not self.is_running

    def _run(
        self,
        photo: Union[np.ndarray, ImageBuffer],
        detections: Sequence[MarkerDetection],
        preview_size: Tuple[int, int],
        **options,
    ) -> None:
        try:
            result = self.processor.process(
                photo,
                detections,
                preview_size,
                on_page_identified=self._notify_page_identified,
                **options,
            )
        except Exception as e:
            logger.error(f"Rectification thread error: {e}", exc_info=True)
            self._notify_failed()
            return

        self._deliver(result)

    def _deliver(self, result: RectificationResult) -> None:
        if not result.is_pass():
            logger.info(f"Picture failed: {result.get_error_message()}")
            self._notify_failed()
            return

        try:
            self.callback.picture_succeeded(
                result.rectified_image,
                result.image_parameters,
                result.code_parameters,
            )
        except Exception as e:
            logger.error(f"Error in picture_succeeded callback: {e}", exc_info=True)

    def _notify_page_identified(self, page_id: str) -> None:
        try:
            self.callback.page_identified(page_id)
        except Exception as e:
            logger.error(f"Error in page_identified callback: {e}", exc_info=True)

    def _notify_failed(self) -> None:
        try:
            self.callback.picture_failed()
        except Exception as e:
            logger.error(f"Error in picture_failed callback: {e}", exc_info=True)
