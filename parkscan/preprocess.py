"""Binary line mask from an aerial parking image."""

from __future__ import annotations

import numpy as np
import cv2  # opencv-python

from parkscan.config import AnalysisConfig, DEFAULT_CONFIG


def to_gray(image: np.ndarray) -> np.ndarray:
    """Return a single-channel uint8 view of a BGR, BGRA or gray image."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def build_line_mask(image: np.ndarray, config: AnalysisConfig = DEFAULT_CONFIG) -> np.ndarray:
    """Binarize painted slot lines.

    Grayscale, Gaussian blur, inverted adaptive (Gaussian-weighted) threshold
    so bright paint on dark asphalt becomes foreground, then a morphological
    opening to drop speckle.

    Args:
        image: BGR (or gray) uint8 image, shape (H, W[, C]).
        config: Analysis parameters (blur kernel, threshold block/constant,
                opening kernel and iterations).

    Returns:
        uint8 mask of shape (H, W) with values 0 or 255.
    """
    gray = to_gray(image)
    k = config.blur_kernel
    blurred = cv2.GaussianBlur(gray, (k, k), 0)
    binary = cv2.adaptiveThreshold(
        blurred,
        255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY_INV,
        config.threshold_block_size,
        config.threshold_constant,
    )

    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (config.open_kernel, config.open_kernel))
    return cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel, iterations=config.open_iterations)
