"""Data records passed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from parkscan.geometry import Rect


@dataclass(frozen=True)
class SlotCandidate:
    """Geometry-filtered rectangle; ``order`` is the contour discovery index."""

    rect: Rect
    order: int


@dataclass(frozen=True)
class Slot:
    id: int
    rect: Rect


@dataclass(frozen=True)
class VehicleDetection:
    class_id: int
    confidence: float
    box: Rect
    class_name: str | None = None


class OccupancyStatus(str, Enum):
    OCCUPIED = "OCCUPIED"
    AVAILABLE = "AVAILABLE"


@dataclass(frozen=True)
class OccupancyResult:
    slot_id: int
    status: OccupancyStatus


@dataclass(frozen=True)
class AnalysisSummary:
    total: int
    occupied: int
    available: int
    occupancy_rate_percent: float

    def to_dict(self) -> dict[str, Any]:
        """Summary in the shape of the analyze API response."""
        return {
            "total_slots": self.total,
            "occupied_slots": self.occupied,
            "available_slots": self.available,
            "occupancy_rate": round(self.occupancy_rate_percent, 1),
        }


@dataclass(frozen=True)
class SlotReport:
    """One output row: slot geometry plus its occupancy status."""

    id: int
    x: int
    y: int
    w: int
    h: int
    status: OccupancyStatus

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.w, self.h)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "w": self.w,
            "h": self.h,
            "status": self.status.value,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Complete output of one image analysis.

    ``line_mask`` and ``exclusion_mask`` are only populated when the run was
    asked to keep them (debug view); they are excluded from equality.
    """

    slots: list[SlotReport]
    summary: AnalysisSummary
    occupancy_degraded: bool = False
    vehicles: list[VehicleDetection] = field(default_factory=list)
    line_mask: np.ndarray | None = field(default=None, compare=False, repr=False)
    exclusion_mask: np.ndarray | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slots": [s.to_dict() for s in self.slots],
            "summary": self.summary.to_dict(),
            "occupancy_degraded": self.occupancy_degraded,
        }
