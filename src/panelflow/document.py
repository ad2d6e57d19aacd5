"""Pages and their editable panel sets.

The detector returns bare rectangles; this module is the collaborator that
turns them into identified panels, applies manual edits and converts
between display and page-pixel coordinates.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from numpy.typing import NDArray

from .detector.filters import reading_order_key
from .detector.utils import Rect
from .errors import InvalidParameterError, PanelNotFoundError

log = logging.getLogger("panelflow.document")

# Injectable for tests that need to force identifier collisions
IdFactory = Callable[[int], str]


def random_panel_id(page_number: int) -> str:
    """Identifier of the form ``<page>-<9 hex digits>``."""
    return f"{page_number}-{uuid.uuid4().hex[:9]}"


def to_page_coords(rect: Rect, display_scale: float) -> Rect:
    """Map a rectangle drawn on a view scaled by ``display_scale`` to page pixels."""
    if display_scale <= 0:
        raise InvalidParameterError(f"display_scale must be > 0, got {display_scale}")
    return rect.scaled(1.0 / display_scale)


def to_display_coords(rect: Rect, display_scale: float) -> Rect:
    """Map a page-pixel rectangle onto a view scaled by ``display_scale``."""
    if display_scale <= 0:
        raise InvalidParameterError(f"display_scale must be > 0, got {display_scale}")
    return rect.scaled(display_scale)


@dataclass(frozen=True)
class Panel:
    """A rectangle with an identifier unique within its page."""
    id: str
    rect: Rect

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, **self.rect.to_dict()}


@dataclass
class Page:
    """A rasterized page and its panels, in creation order."""
    page_number: int
    image: NDArray
    panels: List[Panel] = field(default_factory=list)
    id_factory: IdFactory = field(default=random_panel_id, repr=False)

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    def _new_id(self) -> str:
        taken = {p.id for p in self.panels}
        while True:
            panel_id = self.id_factory(self.page_number)
            if panel_id not in taken:
                return panel_id
            log.debug("Panel id collision on page %d: %s", self.page_number, panel_id)

    def set_detected_panels(self, rects: Iterable[Rect]) -> List[Panel]:
        """Replace the panel set with freshly identified detector output."""
        self.panels = []
        for rect in rects:
            self.panels.append(Panel(self._new_id(), rect))
        return list(self.panels)

    def add_panel(self, rect: Rect) -> Panel:
        """Add a manually drawn panel (page-pixel coordinates)."""
        panel = Panel(self._new_id(), rect)
        self.panels.append(panel)
        return panel

    def get_panel(self, panel_id: str) -> Panel:
        for panel in self.panels:
            if panel.id == panel_id:
                return panel
        raise PanelNotFoundError(panel_id)

    def update_panel(self, panel_id: str, **changes: int) -> Panel:
        """Move or resize a panel; ``changes`` are Rect fields (x, y, width, height)."""
        for i, panel in enumerate(self.panels):
            if panel.id == panel_id:
                updated = Panel(panel.id, replace(panel.rect, **changes))
                self.panels[i] = updated
                return updated
        raise PanelNotFoundError(panel_id)

    def delete_panel(self, panel_id: str) -> None:
        remaining = [p for p in self.panels if p.id != panel_id]
        if len(remaining) == len(self.panels):
            raise PanelNotFoundError(panel_id)
        self.panels = remaining

    def sorted_panels(self, rtl: bool = False) -> List[Panel]:
        """Panels in export reading order: top, then left."""
        return sorted(self.panels, key=lambda p: reading_order_key(p.rect, rtl))


class Document:
    """Ordered mapping of page number to Page."""

    def __init__(self, name: str = "comic"):
        self.name = name
        self._pages: Dict[int, Page] = {}

    def add_page(self, image: NDArray, page_number: Optional[int] = None) -> Page:
        """Append a rasterized page; numbers default to 1-based sequence."""
        if page_number is None:
            page_number = max(self._pages, default=0) + 1
        if page_number in self._pages:
            raise InvalidParameterError(f"Page {page_number} already exists")
        page = Page(page_number, image)
        self._pages[page_number] = page
        return page

    def page(self, page_number: int) -> Page:
        return self._pages[page_number]

    @property
    def pages(self) -> List[Page]:
        return list(self._pages.values())

    def __iter__(self) -> Iterator[Page]:
        return iter(list(self._pages.values()))

    def __len__(self) -> int:
        return len(self._pages)
