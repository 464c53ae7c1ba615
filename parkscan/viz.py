"""Overlay drawing for analysis results."""

from __future__ import annotations

import numpy as np
import cv2  # opencv-python

from parkscan.types import AnalysisResult, OccupancyStatus, VehicleDetection

# BGR
OCCUPIED_COLOR = (0, 0, 255)
AVAILABLE_COLOR = (0, 255, 0)
VEHICLE_COLOR = (255, 128, 0)


def draw_slots(image_bgr: np.ndarray, result: AnalysisResult, show_ids: bool = True) -> np.ndarray:
    """Draw slot rectangles (red occupied, green available) and the count block.

    Modifies a copy of the image; the original is unchanged.

    Args:
        image_bgr: BGR image (H, W, 3), uint8.
        result: Output of ``parkscan.pipeline.analyze_image``.
        show_ids: Label each slot with its id.

    Returns:
        New BGR image (uint8) with overlays drawn.
    """
    out = np.asarray(image_bgr, dtype=np.uint8).copy()
    font = cv2.FONT_HERSHEY_SIMPLEX

    for slot in result.slots:
        color = OCCUPIED_COLOR if slot.status is OccupancyStatus.OCCUPIED else AVAILABLE_COLOR
        cv2.rectangle(out, (slot.x, slot.y), (slot.x + slot.w, slot.y + slot.h), color, 2)
        if show_ids:
            cv2.putText(out, str(slot.id), (slot.x + 3, slot.y + 14), font, 0.4, color, 1, cv2.LINE_AA)

    summary = result.summary
    cv2.putText(out, f"Total: {summary.total}", (10, 30), font, 1, (255, 255, 255), 2)
    cv2.putText(out, f"Occupied: {summary.occupied}", (10, 70), font, 1, OCCUPIED_COLOR, 2)
    cv2.putText(out, f"Available: {summary.available}", (10, 110), font, 1, AVAILABLE_COLOR, 2)
    if result.occupancy_degraded:
        cv2.putText(out, "Occupancy unknown (detector unavailable)", (10, 150), font, 0.7, (0, 255, 255), 2)
    return out


def draw_detections(image_bgr: np.ndarray, vehicles: list[VehicleDetection]) -> np.ndarray:
    """Draw vehicle boxes with class/confidence labels on a copy of the image."""
    out = np.asarray(image_bgr, dtype=np.uint8).copy()
    if not vehicles:
        return out

    font = cv2.FONT_HERSHEY_SIMPLEX
    font_scale = 0.5
    for v in vehicles:
        x1, y1, x2, y2 = v.box.to_xyxy()
        label = f"{v.class_name or v.class_id} {v.confidence:.2f}"

        cv2.rectangle(out, (x1, y1), (x2, y2), VEHICLE_COLOR, 2)
        (tw, th), _ = cv2.getTextSize(label, font, font_scale, 1)
        cv2.rectangle(out, (x1, y1 - th - 4), (x1 + tw, y1), VEHICLE_COLOR, -1)
        cv2.putText(out, label, (x1, y1 - 2), font, font_scale, (0, 0, 0), 1, cv2.LINE_AA)
    return out
