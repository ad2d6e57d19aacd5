"""PanelFlow - split scanned comic pages into panel images.

Classical OpenCV panel detection plus the page model used to review the
detected panels and export them in reading order.
"""

__version__ = "1.0.0"
__author__ = "PanelFlow Contributors"

from .config import DetectionParameters, PRESETS, get_preset, load_parameters
from .detector import PanelDetector, Rect, detect_panels, initialize, is_ready, sort_reading_order
from .document import Document, Page, Panel, to_display_coords, to_page_coords
from .errors import (
    PanelFlowError,
    InvalidImageError,
    InvalidParameterError,
    ProcessingError,
    DetectorNotReadyError,
    PanelNotFoundError,
)

__all__ = [
    "DetectionParameters",
    "PRESETS",
    "get_preset",
    "load_parameters",
    "PanelDetector",
    "Rect",
    "detect_panels",
    "initialize",
    "is_ready",
    "sort_reading_order",
    "Document",
    "Page",
    "Panel",
    "to_display_coords",
    "to_page_coords",
    "PanelFlowError",
    "InvalidImageError",
    "InvalidParameterError",
    "ProcessingError",
    "DetectorNotReadyError",
    "PanelNotFoundError",
]
