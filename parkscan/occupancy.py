"""Slot occupancy classification and summary counts."""

from __future__ import annotations

from typing import Iterable

from parkscan.config import AnalysisConfig, DEFAULT_CONFIG
from parkscan.geometry import iou
from parkscan.types import (
    AnalysisSummary,
    OccupancyResult,
    OccupancyStatus,
    Slot,
    VehicleDetection,
)


def classify_slot(slot: Slot, vehicles: Iterable[VehicleDetection], threshold: float) -> OccupancyStatus:
    """OCCUPIED as soon as one vehicle box overlaps the slot with IoU > threshold."""
    for vehicle in vehicles:
        if iou(slot.rect, vehicle.box) > threshold:
            return OccupancyStatus.OCCUPIED
    return OccupancyStatus.AVAILABLE


def classify_occupancy(
    slots: list[Slot],
    vehicles: list[VehicleDetection],
    config: AnalysisConfig = DEFAULT_CONFIG,
) -> list[OccupancyResult]:
    """Classify every slot against the (already class-filtered) vehicle boxes.

    Args:
        slots: Deduplicated slots.
        vehicles: Vehicle detections in image pixel space.
        config: Uses ``occupancy_iou_threshold`` (default 0.10).

    Returns:
        One result per slot, in slot order.
    """
    threshold = config.occupancy_iou_threshold
    return [OccupancyResult(slot.id, classify_slot(slot, vehicles, threshold)) for slot in slots]


def mark_all_available(slots: list[Slot]) -> list[OccupancyResult]:
    """Fallback classification used when vehicle detection is unavailable."""
    return [OccupancyResult(slot.id, OccupancyStatus.AVAILABLE) for slot in slots]


def summarize(results: list[OccupancyResult]) -> AnalysisSummary:
    """Aggregate per-slot statuses.

    Formula: rate = occupied / total * 100, or 0.0 when there are no slots.
    """
    total = len(results)
    occupied = sum(1 for r in results if r.status is OccupancyStatus.OCCUPIED)
    rate = (occupied / total * 100) if total > 0 else 0.0
    return AnalysisSummary(
        total=total,
        occupied=occupied,
        available=total - occupied,
        occupancy_rate_percent=float(rate),
    )
