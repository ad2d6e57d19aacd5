"""Post-processing filters for panel detection.

Filters:
- Page border rejection
- Nested rectangle suppression
- Padded overlap merging
- Reading order sorting
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .utils import Rect, pdebug


def is_page_border(rect: Rect, w: int, h: int, ratio: float) -> bool:
    """True if the box spans at least ``ratio`` of the page width or height."""
    if w <= 0 or h <= 0:
        return True
    return rect.width / w >= ratio or rect.height / h >= ratio


def suppress_nested_rects(rects: List[Rect]) -> List[Rect]:
    """Drop every rectangle fully contained in another one.

    Of several identical rectangles only the first is kept.

    Args:
        rects: Candidate rectangles

    Returns:
        New list of the retained rectangles, in input order
    """
    kept: List[Rect] = []
    for i, inner in enumerate(rects):
        nested = False
        for j, outer in enumerate(rects):
            if i == j or not outer.contains(inner):
                continue
            # Equal boxes contain each other; the earlier one wins
            if inner == outer and j > i:
                continue
            nested = True
            break
        if nested:
            pdebug(f"[Nested] Dropped ({inner.x},{inner.y}) {inner.width}x{inner.height}")
        else:
            kept.append(inner)
    return kept


def merge_overlapping_rects(rects: List[Rect], padding: int = 10) -> List[Rect]:
    """Merge rectangles whose padded boxes intersect, until none do.

    Each pair is tested with the first box grown by ``padding`` on every
    side, which also joins near-miss fragments. A merged pair is replaced by
    its union and the scan restarts.

    Args:
        rects: Panel rectangles
        padding: Margin in pixels

    Returns:
        Merged list of rectangles
    """
    merged = list(rects)
    changed = True
    while changed:
        changed = False
        for i in range(len(merged)):
            for j in range(i + 1, len(merged)):
                if merged[i].intersects(merged[j], padding):
                    union = merged[i].union(merged[j])
                    pdebug(f"[Merge] {merged[i]} + {merged[j]} -> {union}")
                    merged[i] = union
                    del merged[j]
                    changed = True
                    break
            if changed:
                break
    return merged


def reading_order_key(rect: Rect, rtl: bool = False) -> Tuple[int, int]:
    """Sort key: top coordinate, then left (or negated right edge for RTL)."""
    return (rect.y, -rect.right) if rtl else (rect.y, rect.x)


def sort_reading_order(rects: Iterable[Rect], rtl: bool = False) -> List[Rect]:
    """Sort rectangles by reading order.

    Ascending top coordinate, ties broken by ascending left coordinate
    (or by descending right edge when ``rtl`` is set).

    Args:
        rects: Panel rectangles
        rtl: Right-to-left reading order

    Returns:
        Sorted list of rectangles
    """
    return sorted(rects, key=lambda r: reading_order_key(r, rtl))
