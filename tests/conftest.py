"""Shared fixtures: synthetic comic pages drawn with OpenCV."""

import os
import sys

import cv2
import numpy as np
import pytest

# Allow running the suite from a checkout without installing
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from panelflow.detector import PanelDetector, initialize  # noqa: E402

# Three well-separated panel borders in a 2x2 grid with the bottom-right cell empty
THREE_PANELS = [
    (20, 20, 200, 150),
    (260, 20, 200, 150),
    (20, 210, 200, 150),
]


def draw_page(width, height, borders, thickness=3, channels=3):
    """White page with black rectangular borders given as (x, y, w, h)."""
    page = np.full((height, width, 3), 255, np.uint8)
    for x, y, w, h in borders:
        cv2.rectangle(page, (x, y), (x + w - 1, y + h - 1), (0, 0, 0), thickness)
    if channels == 4:
        alpha = np.full((height, width, 1), 255, np.uint8)
        page = np.concatenate([page, alpha], axis=2)
    elif channels == 1:
        page = page[:, :, 0].copy()
    return page


@pytest.fixture
def make_page():
    return draw_page


@pytest.fixture
def three_panel_page():
    return draw_page(480, 380, THREE_PANELS)


@pytest.fixture
def detector():
    initialize()
    return PanelDetector()
