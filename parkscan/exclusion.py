"""Restricted-zone (yellow paint) mask."""

from __future__ import annotations

import numpy as np
import cv2  # opencv-python

from parkscan.config import AnalysisConfig, DEFAULT_CONFIG


def build_exclusion_mask(image: np.ndarray, config: AnalysisConfig = DEFAULT_CONFIG) -> np.ndarray:
    """Mask pixels painted in the restricted-zone color, plus a safety margin.

    The image is thresholded in HSV against ``config.exclusion_color`` and
    the result dilated with a square all-ones kernel. A grayscale image has
    no hue, so its mask is empty.

    Returns:
        uint8 mask of shape (H, W) with values 0 or 255.
    """
    if image.ndim == 2:
        return np.zeros(image.shape[:2], dtype=np.uint8)
    if image.shape[2] == 4:
        image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)

    hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
    lower = np.array(config.exclusion_color.lower, dtype=np.uint8)
    upper = np.array(config.exclusion_color.upper, dtype=np.uint8)
    raw = cv2.inRange(hsv, lower, upper)

    k = config.exclusion_dilate_kernel
    kernel = np.ones((k, k), np.uint8)
    return cv2.dilate(raw, kernel, iterations=config.exclusion_dilate_iterations)
