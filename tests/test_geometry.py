import pytest

from parkscan.geometry import Rect, center_distance_sq, iou, iou_xyxy


RECTS = [
    Rect(0, 0, 10, 10),
    Rect(5, 5, 10, 10),
    Rect(20, 20, 30, 5),
    Rect(3, 0, 40, 100),
    Rect(0, 60, 40, 40),
]


def test_rect_properties():
    r = Rect(10, 20, 40, 100)
    assert r.area == 4000
    assert r.aspect_ratio == pytest.approx(0.4)
    assert r.center == (30, 70)
    assert r.to_xyxy() == (10, 20, 50, 120)


def test_rect_center_uses_floor_division():
    assert Rect(0, 0, 5, 7).center == (2, 3)


def test_zero_height_aspect_ratio():
    assert Rect(0, 0, 10, 0).aspect_ratio == 0.0


def test_from_xyxy_truncates():
    assert Rect.from_xyxy(1.9, 2.2, 11.7, 30.0) == Rect(1, 2, 10, 28)


@pytest.mark.parametrize("r", RECTS)
def test_iou_identity(r):
    assert iou(r, r) == pytest.approx(1.0)


@pytest.mark.parametrize("a", RECTS)
@pytest.mark.parametrize("b", RECTS)
def test_iou_symmetric(a, b):
    assert iou(a, b) == iou(b, a)


def test_iou_no_overlap():
    assert iou(Rect(0, 0, 10, 10), Rect(20, 20, 10, 10)) == 0.0


def test_iou_touching_edges_is_zero():
    assert iou(Rect(0, 0, 10, 10), Rect(10, 0, 10, 10)) == 0.0


def test_iou_partial_overlap():
    # inter 25, union 175
    assert iou(Rect(0, 0, 10, 10), Rect(5, 5, 10, 10)) == pytest.approx(25 / 175)


def test_iou_degenerate_union_is_zero():
    assert iou(Rect(5, 5, 0, 0), Rect(5, 5, 0, 0)) == 0.0
    assert iou_xyxy((0, 0, 0, 0), (0, 0, 0, 0)) == 0.0


def test_iou_degenerate_against_real_box():
    assert iou(Rect(5, 5, 0, 0), Rect(0, 0, 10, 10)) == 0.0


def test_iou_contained_box():
    assert iou(Rect(0, 0, 40, 100), Rect(0, 0, 40, 70)) == pytest.approx(0.7)


def test_center_distance_sq():
    assert center_distance_sq(Rect(0, 0, 10, 10), Rect(10, 10, 10, 10)) == 200
