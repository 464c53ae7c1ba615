"""Axis-aligned rectangle helpers: IoU and center distances."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in integer pixel coordinates (top-left + size)."""

    x: int
    y: int
    w: int
    h: int

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        """Build a rect from corner coordinates; floats are truncated to int."""
        x1, y1, x2, y2 = int(x1), int(y1), int(x2), int(y2)
        return cls(x1, y1, x2 - x1, y2 - y1)

    @property
    def area(self) -> int:
        return self.w * self.h

    @property
    def aspect_ratio(self) -> float:
        """Width over height; 0.0 for a zero-height rect."""
        if self.h == 0:
            return 0.0
        return self.w / self.h

    @property
    def center(self) -> tuple[int, int]:
        """Integer center pixel, ``(x + w // 2, y + h // 2)``."""
        return (self.x + self.w // 2, self.y + self.h // 2)

    def to_xyxy(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.x + self.w, self.y + self.h)


def iou_xyxy(
    box_a: tuple[float, float, float, float],
    box_b: tuple[float, float, float, float],
) -> float:
    """Intersection over Union of two ``[x1, y1, x2, y2]`` boxes.

    Disjoint boxes give 0.0. A zero union (both boxes degenerate) also
    gives 0.0 instead of dividing by zero.

    Args:
        box_a: First box as (x1, y1, x2, y2).
        box_b: Second box as (x1, y1, x2, y2).

    Returns:
        IoU in [0, 1].
    """
    x_left = max(box_a[0], box_b[0])
    y_top = max(box_a[1], box_b[1])
    x_right = min(box_a[2], box_b[2])
    y_bottom = min(box_a[3], box_b[3])

    if x_right < x_left or y_bottom < y_top:
        return 0.0

    inter_area = (x_right - x_left) * (y_bottom - y_top)
    area_a = (box_a[2] - box_a[0]) * (box_a[3] - box_a[1])
    area_b = (box_b[2] - box_b[0]) * (box_b[3] - box_b[1])
    union_area = area_a + area_b - inter_area

    if union_area <= 0:
        logger.debug(f"Degenerate geometry: zero union for {box_a} / {box_b}, IoU=0")
        return 0.0

    return inter_area / union_area


def iou(a: Rect, b: Rect) -> float:
    """IoU of two rects (see :func:`iou_xyxy`)."""
    return iou_xyxy(a.to_xyxy(), b.to_xyxy())


def center_distance_sq(a: Rect, b: Rect) -> int:
    """Squared Euclidean distance between the integer centers of two rects."""
    ax, ay = a.center
    bx, by = b.center
    return (ax - bx) ** 2 + (ay - by) ** 2
