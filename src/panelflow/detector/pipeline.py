"""Adaptive threshold detection route.

Image-processing stages of the detector:
- Adaptive mean thresholding (inverted, ink becomes foreground)
- Square-kernel dilation to fuse nearby ink
- External contour extraction with area and page-border filtering
"""

from __future__ import annotations

from typing import List, TYPE_CHECKING

import cv2
import numpy as np
from numpy.typing import NDArray

from .filters import is_page_border
from .utils import Rect, pdebug

if TYPE_CHECKING:
    from ..config import DetectionParameters


def adaptive_threshold_route(gray: NDArray, params: "DetectionParameters") -> NDArray:
    """Binarize with a local-mean adaptive threshold.

    Args:
        gray: Grayscale image
        params: Detection parameters

    Returns:
        Inverted binary mask: dark ink on light paper becomes 255
    """
    return cv2.adaptiveThreshold(
        gray, 255,
        cv2.ADAPTIVE_THRESH_MEAN_C,
        cv2.THRESH_BINARY_INV,
        params.adaptive_block_size, params.adaptive_c,
    )


def dilate_mask(mask: NDArray, params: "DetectionParameters") -> NDArray:
    """One dilation pass with a square kernel of the effective kernel size."""
    k = params.effective_kernel_size
    kernel = np.ones((k, k), np.uint8)
    return cv2.dilate(mask, kernel, iterations=1)


def rects_from_mask(
    mask: NDArray,
    w: int,
    h: int,
    params: "DetectionParameters",
) -> List[Rect]:
    """Extract and filter candidate rectangles from a binary mask.

    Only outermost contours are considered; holes and anything drawn inside
    a closed border are not reported separately.

    Args:
        mask: Binary mask
        w, h: Image dimensions
        params: Detection parameters

    Returns:
        List of rectangles in page-pixel coordinates, in contour order
    """
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    if not contours:
        return []

    rects: List[Rect] = []
    for contour in contours:
        area = float(cv2.contourArea(contour))
        if area < params.min_contour_area:
            continue

        x, y, cw, ch = cv2.boundingRect(contour)
        rect = Rect(int(x), int(y), int(cw), int(ch))
        if is_page_border(rect, w, h, params.border_ratio):
            pdebug(f"[Border] Rejected page-sized box {cw}x{ch}")
            continue

        rects.append(rect)

    pdebug(f"Contours: {len(contours)} -> {len(rects)} candidates")
    return rects
