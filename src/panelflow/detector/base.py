"""Core PanelDetector class with main detection flow.

This is the main entry point for panel detection, coordinating:
- Grayscale conversion
- Adaptive threshold + dilation
- External contour extraction with area / page-border filtering
- Nested rectangle suppression
- Padded overlap merging
"""

from __future__ import annotations

import threading
import time
from typing import Dict, List, Optional

import cv2
import numpy as np
from numpy.typing import NDArray

from ..config import DetectionParameters
from ..errors import DetectorNotReadyError, ProcessingError
from ..image_utils import ImageLike, as_pixel_array, to_grayscale
from .filters import merge_overlapping_rects, suppress_nested_rects
from .pipeline import adaptive_threshold_route, dilate_mask, rects_from_mask
from .utils import Rect, log, pdebug

_REQUIRED_CV2 = (
    "cvtColor", "adaptiveThreshold", "dilate",
    "findContours", "contourArea", "boundingRect",
)

_ready = False
_ready_lock = threading.Lock()


def initialize() -> None:
    """One-time OpenCV readiness check.

    Verifies the functions the pipeline needs and runs a warm-up pass on a
    blank page. Idempotent and safe to call from several threads.

    Raises:
        ProcessingError: if OpenCV is unusable
    """
    global _ready
    with _ready_lock:
        if _ready:
            return
        missing = [name for name in _REQUIRED_CV2 if not hasattr(cv2, name)]
        if missing:
            raise ProcessingError(f"OpenCV {cv2.__version__} lacks {', '.join(missing)}")
        try:
            blank = np.full((32, 32), 255, np.uint8)
            _run_pipeline(blank, DetectionParameters())
        except cv2.error as e:
            raise ProcessingError(f"OpenCV warm-up failed: {e}") from e
        _ready = True
        log.info("OpenCV %s ready for panel detection", cv2.__version__)


def is_ready() -> bool:
    """True once initialize() has completed."""
    with _ready_lock:
        return _ready


def _run_pipeline(pixels: NDArray, params: DetectionParameters) -> List[Rect]:
    """Run every stage on a validated pixel array."""
    h, w = pixels.shape[:2]
    # A traceback keeps this frame alive; stage buffers must not outlive the call
    stages: Dict[str, NDArray] = {}
    try:
        stages["gray"] = to_grayscale(pixels)
        stages["binary"] = adaptive_threshold_route(stages["gray"], params)
        stages["dilated"] = dilate_mask(stages["binary"], params)
        rects = rects_from_mask(stages["dilated"], w, h, params)
    finally:
        stages.clear()

    rects = suppress_nested_rects(rects)
    pdebug(f"After nested suppression: {len(rects)}")
    if params.merge_overlaps:
        rects = merge_overlapping_rects(rects, params.merge_padding)
        pdebug(f"After overlap merge: {len(rects)}")
    return rects


class PanelDetector:
    """Comic panel detector.

    A pure function of (image, parameters): instances hold only their
    default parameters, so one detector may serve several threads.
    """

    def __init__(self, params: Optional[DetectionParameters] = None):
        """Initialize detector with parameters.

        Args:
            params: Detection parameters. Uses defaults if None.
        """
        self.params = (params or DetectionParameters()).validate()

    @staticmethod
    def initialize() -> None:
        """Run the one-time library readiness check (see module ``initialize``)."""
        initialize()

    @property
    def is_ready(self) -> bool:
        return is_ready()

    def detect(
        self,
        image: ImageLike,
        params: Optional[DetectionParameters] = None,
    ) -> List[Rect]:
        """Detect comic panels in a rendered page image.

        Args:
            image: Page as a uint8 array (gray, RGB or RGBA) or a QImage
            params: Overrides the detector's own parameters for this call

        Returns:
            Panel rectangles in page-pixel coordinates. The order is not
            geometric; use ``sort_reading_order`` for reading order.

        Raises:
            DetectorNotReadyError: if initialize() has not run
            InvalidImageError: for empty or unsupported images
            InvalidParameterError: for out-of-range parameters
            ProcessingError: if OpenCV fails
        """
        if not is_ready():
            raise DetectorNotReadyError("PanelDetector.initialize() must be called before detect()")

        params = self.params if params is None else params.validate()
        pixels = as_pixel_array(image)
        h, w = pixels.shape[:2]
        self._log_params(params, w, h)

        start = time.perf_counter()
        try:
            rects = _run_pipeline(pixels, params)
        except cv2.error as e:
            raise ProcessingError(f"OpenCV failed on {w}x{h} image: {e}") from e
        finally:
            del pixels

        pdebug(f"Final: {len(rects)} panels in {(time.perf_counter() - start) * 1000:.1f} ms")
        return rects

    @staticmethod
    def _log_params(params: DetectionParameters, w: int, h: int) -> None:
        """Log current detection parameters."""
        pdebug(
            f"Image size: {w}x{h}",
            f"ab={params.adaptive_block_size} C={params.adaptive_c}",
            f"k={params.effective_kernel_size} min_area={params.min_contour_area}",
            f"border={params.border_ratio} merge={params.merge_overlaps}/{params.merge_padding}",
        )


def detect_panels(
    image: ImageLike,
    params: Optional[DetectionParameters] = None,
) -> List[Rect]:
    """Initialize if needed and detect panels with a throwaway detector."""
    initialize()
    return PanelDetector(params).detect(image)
