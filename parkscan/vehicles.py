"""Detector interface consumed by the pipeline."""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

import numpy as np

from parkscan.types import VehicleDetection


@runtime_checkable
class VehicleDetector(Protocol):
    """Anything that maps an image to vehicle boxes in image pixel space."""

    def detect(self, image: np.ndarray) -> list[VehicleDetection]:
        ...


def filter_vehicle_detections(
    detections: Iterable[VehicleDetection],
    allowed_class_ids: Iterable[int],
) -> list[VehicleDetection]:
    """Keep only detections whose class id is allow-listed, preserving order."""
    allowed = set(allowed_class_ids)
    return [d for d in detections if d.class_id in allowed]
