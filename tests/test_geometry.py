"""Rect geometry helpers."""

import pytest

from panelflow.detector import Rect


def test_edges_and_area():
    r = Rect(10, 20, 100, 50)
    assert r.right == 110
    assert r.bottom == 70
    assert r.area == 5000


def test_negative_size_rejected():
    with pytest.raises(ValueError):
        Rect(0, 0, -1, 10)


def test_contains_is_edge_inclusive():
    outer = Rect(0, 0, 100, 100)
    assert outer.contains(Rect(10, 10, 20, 20))
    assert outer.contains(Rect(0, 0, 100, 100))
    assert not outer.contains(Rect(90, 90, 20, 20))
    assert not Rect(10, 10, 20, 20).contains(outer)


def test_intersects_with_padding():
    a = Rect(0, 0, 100, 100)
    b = Rect(105, 0, 50, 50)
    assert not a.intersects(b)
    assert a.intersects(b, padding=10)
    # Touching edges do not overlap without padding
    assert not a.intersects(Rect(100, 0, 10, 10))


def test_union():
    a = Rect(0, 0, 10, 10)
    b = Rect(5, 5, 10, 10)
    assert a.union(b) == Rect(0, 0, 15, 15)


def test_scaled_rounds_to_pixels():
    assert Rect(10, 20, 30, 40).scaled(0.5) == Rect(5, 10, 15, 20)
    assert Rect(3, 3, 3, 3).scaled(1.5) == Rect(4, 4, 4, 4)


def test_dict_form():
    r = Rect(1, 2, 3, 4)
    assert r.to_dict() == {"x": 1, "y": 2, "width": 3, "height": 4}
    assert Rect.from_dict({"x": 1.0, "y": 2, "width": 3, "height": 4, "id": "x"}) == r
