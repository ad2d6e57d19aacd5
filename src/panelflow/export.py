"""Crop panels in reading order for repackaging.

Archive writing is left to the caller; this module only produces the
named panel images.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from numpy.typing import NDArray

from .document import Document, Page
from .image_utils import encode_png

log = logging.getLogger("panelflow.export")


def panel_filename(page_number: int, index: int) -> str:
    """``p001_01.png`` style name; ``index`` is the 1-based position on the page."""
    return f"p{page_number:03d}_{index:02d}.png"


def crop_panels(page: Page, rtl: bool = False) -> List[Tuple[str, NDArray]]:
    """Crop a page's panels in reading order.

    Panels are clipped to the page; one lying entirely outside it is
    skipped but still consumes its index so names stay stable.
    """
    crops: List[Tuple[str, NDArray]] = []
    for index, panel in enumerate(page.sorted_panels(rtl), start=1):
        r = panel.rect
        x0, y0 = max(0, r.x), max(0, r.y)
        x1, y1 = min(page.width, r.right), min(page.height, r.bottom)
        if x1 <= x0 or y1 <= y0:
            log.warning("Page %d: panel %s lies outside the page, skipped", page.page_number, panel.id)
            continue
        crops.append((panel_filename(page.page_number, index), page.image[y0:y1, x0:x1].copy()))
    return crops


def export_pngs(document: Document, rtl: bool = False) -> List[Tuple[str, bytes]]:
    """PNG-encoded crops of every page, in page then reading order."""
    files: List[Tuple[str, bytes]] = []
    for page in document:
        for name, crop in crop_panels(page, rtl):
            files.append((name, encode_png(crop)))
    log.info("Prepared %d panel images from %d pages", len(files), len(document))
    return files
