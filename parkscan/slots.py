"""Parking-slot candidates from a line mask, and their greedy deduplication."""

from __future__ import annotations

import logging

import numpy as np
import cv2  # opencv-python

from parkscan.config import AnalysisConfig, DEFAULT_CONFIG
from parkscan.errors import StageError
from parkscan.geometry import Rect, center_distance_sq, iou
from parkscan.types import Slot, SlotCandidate

logger = logging.getLogger(__name__)


def _in_exclusion_zone(exclusion_mask: np.ndarray, point: tuple[int, int]) -> bool:
    cx, cy = point
    h, w = exclusion_mask.shape[:2]
    if not (0 <= cx < w and 0 <= cy < h):
        return False
    return bool(exclusion_mask[cy, cx] != 0)


def extract_slot_candidates(
    line_mask: np.ndarray,
    exclusion_mask: np.ndarray,
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> list[SlotCandidate]:
    """Find near-rectangular outer contours that look like single parking slots.

    Each external contour is kept only if its enclosed area is within
    ``[min_slot_area, max_slot_area]``, its polygon approximation has
    ``min_polygon_vertices..max_polygon_vertices`` corners, its bounding-box
    aspect ratio (w/h) is within ``[min_aspect_ratio, max_aspect_ratio]``,
    and the bounding-box center is not flagged in ``exclusion_mask``.

    Args:
        line_mask: uint8 binary mask (H, W), lines/regions = 255.
        exclusion_mask: uint8 mask (H, W), restricted pixels non-zero.
        config: Analysis parameters.

    Returns:
        Candidates in contour discovery order, each tagged with that order.
    """
    if line_mask.shape[:2] != exclusion_mask.shape[:2]:
        raise StageError(
            "candidates",
            f"mask shapes differ: line {line_mask.shape[:2]} vs exclusion {exclusion_mask.shape[:2]}",
        )

    contours, _ = cv2.findContours(line_mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    candidates: list[SlotCandidate] = []
    for order, cnt in enumerate(contours):
        area = cv2.contourArea(cnt)
        if not (config.min_slot_area <= area <= config.max_slot_area):
            continue

        peri = cv2.arcLength(cnt, True)
        approx = cv2.approxPolyDP(cnt, config.poly_epsilon_factor * peri, True)
        if not (config.min_polygon_vertices <= len(approx) <= config.max_polygon_vertices):
            continue

        x, y, w, h = cv2.boundingRect(cnt)
        rect = Rect(int(x), int(y), int(w), int(h))
        if rect.h <= 0:
            continue
        if not (config.min_aspect_ratio <= rect.aspect_ratio <= config.max_aspect_ratio):
            continue

        if _in_exclusion_zone(exclusion_mask, rect.center):
            continue

        candidates.append(SlotCandidate(rect=rect, order=order))

    logger.debug(f"{len(contours)} contours -> {len(candidates)} slot candidates")
    return candidates


def is_duplicate(candidate: Rect, existing: Rect, config: AnalysisConfig = DEFAULT_CONFIG) -> bool:
    """True if ``candidate`` overlaps ``existing`` heavily or sits on top of it.

    Either the IoU exceeds ``dedup_iou_threshold`` or the squared center
    distance is below ``(dedup_center_factor * min(widths)) ** 2``.
    """
    if iou(candidate, existing) > config.dedup_iou_threshold:
        return True
    limit = config.dedup_center_factor * min(candidate.w, existing.w)
    return center_distance_sq(candidate, existing) < limit ** 2


def deduplicate_slots(
    candidates: list[SlotCandidate],
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> list[Slot]:
    """Greedy left-to-right deduplication of slot candidates.

    Candidates are stably sorted by x (ties keep discovery order) and scanned
    once; each is compared with every slot accepted so far and dropped if it
    is a duplicate of any of them (see :func:`is_duplicate`). The result is
    order-dependent: this is not score-ranked NMS.

    Returns:
        Accepted slots with ids 1..N in acceptance order.
    """
    ordered = sorted(candidates, key=lambda c: (c.rect.x, c.order))

    slots: list[Slot] = []
    for cand in ordered:
        if any(is_duplicate(cand.rect, s.rect, config) for s in slots):
            continue
        slots.append(Slot(id=len(slots) + 1, rect=cand.rect))

    logger.debug(f"{len(candidates)} candidates -> {len(slots)} slots after dedup")
    return slots
