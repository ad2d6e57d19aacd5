"""Shared utilities and data structures for panel detection.

Contains:
- Rect dataclass for panel candidates
- pdebug logger shared by the detection modules
- Geometry helpers (containment, padded intersection, union)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

log = logging.getLogger("panelflow.detector")


def pdebug(*parts: object) -> None:
    """Debug logger for panel detection."""
    if log.isEnabledFor(logging.DEBUG):
        log.debug("[Panels] " + " ".join(map(str, parts)))


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in page-pixel coordinates (top-left origin)."""
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Rect size must be non-negative, got {self.width}x{self.height}")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def contains(self, other: "Rect") -> bool:
        """True if ``other`` lies entirely inside this rect (edges inclusive)."""
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def intersects(self, other: "Rect", padding: int = 0) -> bool:
        """Overlap test with this rect grown by ``padding`` on every side."""
        return (
            self.x - padding < other.right
            and other.x < self.right + padding
            and self.y - padding < other.bottom
            and other.y < self.bottom + padding
        )

    def union(self, other: "Rect") -> "Rect":
        """Bounding box of both rects."""
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        x1 = max(self.right, other.right)
        y1 = max(self.bottom, other.bottom)
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def scaled(self, factor: float) -> "Rect":
        """Multiply every coordinate by ``factor``, rounding to whole pixels."""
        return Rect(
            int(round(self.x * factor)),
            int(round(self.y * factor)),
            int(round(self.width * factor)),
            int(round(self.height * factor)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rect":
        return cls(int(data["x"]), int(data["y"]), int(data["width"]), int(data["height"]))
