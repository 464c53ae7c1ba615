"""Shared fixtures: synthetic parking-lot images and deterministic detector stubs."""

import logging

import numpy as np
import pytest
import cv2

from parkscan.geometry import Rect
from parkscan.types import VehicleDetection

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# A 40x100 dark slot on bright pavement: the adaptive threshold turns its
# border into a closed ring whose outer contour is the slot rectangle.
SLOT_RECT = Rect(100, 100, 40, 100)
BACKGROUND = 200


class StubDetector:
    """Deterministic detector returning a fixed list and recording calls."""

    def __init__(self, detections=None, error=None):
        self.detections = list(detections or [])
        self.error = error
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.detections)


def car(x, y, w, h, class_id=2, confidence=0.9):
    return VehicleDetection(class_id=class_id, confidence=confidence, box=Rect(x, y, w, h))


def lot_image(rects=(SLOT_RECT,), size=(300, 300)):
    """Bright image with one dark filled rectangle per slot."""
    h, w = size
    image = np.full((h, w, 3), BACKGROUND, dtype=np.uint8)
    for r in rects:
        cv2.rectangle(image, (r.x, r.y), (r.x + r.w - 1, r.y + r.h - 1), (0, 0, 0), -1)
    return image


def filled_mask(rects, size=(400, 400)):
    """Binary mask with one filled 255 rectangle per rect."""
    mask = np.zeros(size, dtype=np.uint8)
    for r in rects:
        cv2.rectangle(mask, (r.x, r.y), (r.x + r.w - 1, r.y + r.h - 1), 255, -1)
    return mask


@pytest.fixture
def slot_image():
    return lot_image()


@pytest.fixture
def empty_image():
    return np.full((300, 300, 3), BACKGROUND, dtype=np.uint8)


@pytest.fixture
def no_vehicles():
    return StubDetector()
