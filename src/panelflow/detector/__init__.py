"""Panel detection engine for PanelFlow.

Classical OpenCV segmentation of a rendered comic page into panel boxes.

This package provides a modular architecture for panel detection:
- base.py: Core PanelDetector class, readiness check and main detection flow
- pipeline.py: Threshold, dilation and contour extraction stages
- filters.py: Border rejection, de-nesting, overlap merging, reading order
- utils.py: Rect dataclass and shared logging helper
"""

from __future__ import annotations

from .base import PanelDetector, detect_panels, initialize, is_ready
from .filters import (
    merge_overlapping_rects,
    reading_order_key,
    sort_reading_order,
    suppress_nested_rects,
)
from .utils import Rect

__all__ = [
    "PanelDetector",
    "Rect",
    "detect_panels",
    "initialize",
    "is_ready",
    "merge_overlapping_rects",
    "reading_order_key",
    "sort_reading_order",
    "suppress_nested_rects",
]
