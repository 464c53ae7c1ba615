"""Image decoding and validation for pipeline input."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import cv2  # opencv-python

from parkscan.errors import InvalidImage


def ensure_bgr(image: np.ndarray) -> np.ndarray:
    """Validate an input image and normalize it to 3-channel BGR uint8.

    Gray (H, W) and (H, W, 1) images are expanded to BGR; BGRA has its alpha
    channel dropped; non-uint8 arrays are clipped into 0-255. The input array
    is never modified.

    Raises:
        InvalidImage: If the input is not an array, has a zero dimension, or
            has an unsupported shape.
    """
    if image is None or not isinstance(image, np.ndarray):
        raise InvalidImage(f"expected a numpy image array, got {type(image).__name__}")
    if image.ndim not in (2, 3):
        raise InvalidImage(f"expected a 2-D or 3-D image array, got shape {image.shape}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidImage(f"image has a zero dimension: {image.shape}")
    if image.ndim == 3 and image.shape[2] not in (1, 3, 4):
        raise InvalidImage(f"unsupported channel count: {image.shape[2]}")

    # Ensure uint8 for OpenCV robustness
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)

    if image.ndim == 2 or image.shape[2] == 1:
        return cv2.cvtColor(image.reshape(image.shape[:2]), cv2.COLOR_GRAY2BGR)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    return image


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes (JPG/PNG/...) into a BGR uint8 array.

    Raises:
        InvalidImage: If the bytes are empty or cannot be decoded.
    """
    if not data:
        raise InvalidImage("empty image data")
    buf = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if image is None:
        raise InvalidImage("could not decode image data")
    return ensure_bgr(image)


def load_image(path: str | Path) -> np.ndarray:
    """Read an image file from disk as BGR uint8."""
    p = Path(path)
    if not p.is_file():
        raise InvalidImage(f"image file not found: {p}")
    return decode_image(p.read_bytes())
