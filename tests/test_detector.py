"""End-to-end detection on synthetic pages."""

import cv2
import numpy as np
import pytest
from PySide6.QtGui import QImage

from panelflow.config import DetectionParameters
from panelflow.detector import PanelDetector, Rect, detect_panels, sort_reading_order
from panelflow.detector import base as detector_base
from panelflow.detector import pipeline
from panelflow.errors import (
    DetectorNotReadyError,
    InvalidImageError,
    InvalidParameterError,
    ProcessingError,
)

from conftest import THREE_PANELS


def _close(rect, expected, tol=6):
    x, y, w, h = expected
    return (abs(rect.x - x) <= tol and abs(rect.y - y) <= tol
            and abs(rect.right - (x + w)) <= tol and abs(rect.bottom - (y + h)) <= tol)


def test_three_separated_borders(detector, three_panel_page):
    rects = sort_reading_order(detector.detect(three_panel_page))
    assert len(rects) == 3
    for rect, expected in zip(rects, THREE_PANELS):
        assert _close(rect, expected), (rect, expected)


def test_rgba_and_gray_input_match(detector, make_page):
    rgb = make_page(480, 380, THREE_PANELS)
    rgba = make_page(480, 380, THREE_PANELS, channels=4)
    gray = make_page(480, 380, THREE_PANELS, channels=1)
    expected = set(detector.detect(rgb))
    assert set(detector.detect(rgba)) == expected
    assert set(detector.detect(gray)) == expected


def test_qimage_input(detector, make_page):
    rgba = make_page(480, 380, THREE_PANELS, channels=4)
    h, w = rgba.shape[:2]
    data = rgba.tobytes()
    qimg = QImage(data, w, h, 4 * w, QImage.Format.Format_RGBA8888).copy()
    assert set(detector.detect(qimg)) == set(detector.detect(rgba))


def test_page_border_not_reported(detector, make_page):
    w, h = 480, 380
    page = make_page(w, h, [(60, 80, 200, 150)])
    # Full-width banner along the top edge
    cv2.rectangle(page, (0, 5), (w - 1, 35), (0, 0, 0), -1)
    rects = detector.detect(page)
    assert len(rects) == 1
    assert _close(rects[0], (60, 80, 200, 150))


def test_framed_page_yields_no_panels(detector, make_page):
    # Panels inside a page-wide frame are not external contours
    w, h = 480, 380
    page = make_page(w, h, [(2, 2, w - 4, h - 4), (60, 60, 200, 150)], thickness=4)
    assert detector.detect(page) == []


def test_inner_balloon_not_reported(detector, make_page):
    # A closed shape inside a panel border is part of its external contour
    page = make_page(480, 380, [(40, 40, 300, 250), (100, 100, 60, 40)])
    rects = detector.detect(page)
    assert len(rects) == 1
    assert _close(rects[0], (40, 40, 300, 250))


def test_area_threshold(detector):
    page = np.full((300, 300), 255, np.uint8)
    page[100:102, 100:102] = 0
    assert detector.detect(page, DetectionParameters(min_contour_area=100)) == []
    rects = detector.detect(page, DetectionParameters(min_contour_area=1))
    assert len(rects) == 1
    assert rects[0].contains(Rect(100, 100, 2, 2))


def test_blank_page_has_no_panels(detector):
    page = np.full((200, 300, 3), 255, np.uint8)
    assert detector.detect(page) == []


def test_detection_is_deterministic(detector, make_page):
    page = make_page(480, 380, THREE_PANELS)
    rng = np.random.default_rng(0)
    for _ in range(40):
        x, y = int(rng.integers(0, 470)), int(rng.integers(0, 370))
        cv2.circle(page, (x, y), int(rng.integers(1, 6)), (0, 0, 0), -1)
    params = DetectionParameters(min_contour_area=50)
    assert set(detector.detect(page, params)) == set(detector.detect(page, params))


def test_default_parameters_keep_neighbouring_panels(detector, make_page):
    page = make_page(600, 400, [(20, 20, 270, 200), (302, 20, 270, 200)])
    rects = sort_reading_order(detector.detect(page))
    assert len(rects) == 2
    assert _close(rects[0], (20, 20, 270, 200))
    assert _close(rects[1], (302, 20, 270, 200))


def test_padding_controls_merge_of_close_borders(detector, make_page):
    # 18px gutter: 14px after dilation
    page = make_page(480, 300, [(40, 40, 150, 150), (210, 40, 150, 150)])
    assert len(detector.detect(page)) == 2
    assert len(detector.detect(page, DetectionParameters(merge_overlaps=True, merge_padding=10))) == 2
    merged = detector.detect(page, DetectionParameters(merge_overlaps=True, merge_padding=20))
    assert len(merged) == 1
    assert _close(merged[0], (40, 40, 320, 150))


def test_even_kernel_is_accepted(detector, three_panel_page):
    rects = detector.detect(three_panel_page, DetectionParameters(dilation_kernel_size=4))
    assert len(rects) == 3


@pytest.mark.parametrize("image", [
    None,
    np.zeros((0, 0), np.uint8),
    np.zeros((0, 10, 3), np.uint8),
    np.zeros((10, 10), np.float32),
    np.zeros((10, 10, 2), np.uint8),
    np.zeros((10,), np.uint8),
    "page.png",
    QImage(),
])
def test_invalid_images(detector, image):
    with pytest.raises(InvalidImageError):
        detector.detect(image)


@pytest.mark.parametrize("changes", [
    {"min_contour_area": 0},
    {"min_contour_area": -5},
    {"dilation_kernel_size": 0},
    {"dilation_kernel_size": -3},
    {"dilation_kernel_size": 2.5},
    {"border_ratio": 1.0},
    {"adaptive_block_size": 10},
])
def test_invalid_parameters(detector, three_panel_page, changes):
    with pytest.raises(InvalidParameterError):
        detector.detect(three_panel_page, DetectionParameters(**changes))


def test_invalid_parameters_rejected_at_construction():
    with pytest.raises(InvalidParameterError):
        PanelDetector(DetectionParameters(min_contour_area=0))


def test_detect_requires_initialize(monkeypatch, three_panel_page):
    monkeypatch.setattr(detector_base, "_ready", False)
    with pytest.raises(DetectorNotReadyError):
        PanelDetector().detect(three_panel_page)


def test_initialize_is_idempotent():
    detector_base.initialize()
    detector_base.initialize()
    assert detector_base.is_ready()
    assert PanelDetector().is_ready


def test_detect_panels_initializes(monkeypatch, three_panel_page):
    monkeypatch.setattr(detector_base, "_ready", False)
    assert len(detect_panels(three_panel_page)) == 3
    assert detector_base.is_ready()


def test_opencv_failure_is_wrapped(detector, three_panel_page, monkeypatch):
    def broken_dilate(*args, **kwargs):
        raise cv2.error("dilate failed")

    monkeypatch.setattr(pipeline.cv2, "dilate", broken_dilate)
    with pytest.raises(ProcessingError):
        detector.detect(three_panel_page)
