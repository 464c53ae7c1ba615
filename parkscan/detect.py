"""Vehicle detection using Ultralytics YOLO (whole-image or tiled inference)."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import torch
from ultralytics import YOLO
from torchvision.ops import nms
import cv2  # opencv-python

from parkscan.errors import ConfigurationError, DetectorUnavailable
from parkscan.geometry import Rect
from parkscan.types import VehicleDetection

logger = logging.getLogger(__name__)

# Project root (parent of parkscan package) for resolving models/*.pt
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _resolve_model_path(model_name: str) -> str:
    """If path is models/<file>.pt and that file exists under the project root, use it."""
    p = Path(model_name)
    if not p.is_absolute() and "models" in p.parts:
        candidate = _PROJECT_ROOT / p
        if candidate.exists():
            return str(candidate)
    return model_name


class YoloVehicleDetector:
    """Vehicle detector backed by an Ultralytics YOLO model.

    The model is loaded lazily on first use. With ``tile`` set, the image is
    split into overlapping square tiles (useful for large aerial mosaics
    where cars are only a few pixels wide) and tile outputs are merged with
    a global NMS.

    Args:
        model_path: Weights file or Ultralytics model name (downloads if absent).
        conf: Minimum detection confidence.
        iou: NMS IoU threshold inside YOLO.
        imgsz: Inference size passed to YOLO.
        tile: Tile size in pixels, or None for whole-image inference.
        overlap: Overlap between neighbouring tiles.
        merge_iou: IoU threshold of the cross-tile NMS.
        max_det: Cap on detections per YOLO call.
        device: Torch device string, or None for Ultralytics' default.

    Raises:
        ConfigurationError: If ``tile`` is set and ``overlap`` is not in [0, tile).
    """

    def __init__(
        self,
        model_path: str = "yolov8s.pt",
        conf: float = 0.25,
        iou: float = 0.5,
        imgsz: int = 640,
        tile: int | None = None,
        overlap: int = 256,
        merge_iou: float = 0.35,
        max_det: int = 1000,
        device: str | None = None,
    ):
        if tile is not None and not 0 <= overlap < tile:
            raise ConfigurationError(f"overlap must lie in [0, tile), got overlap={overlap}, tile={tile}")
        self.model_path = model_path
        self.conf = conf
        self.iou = iou
        self.imgsz = imgsz
        self.tile = tile
        self.overlap = overlap
        self.merge_iou = merge_iou
        self.max_det = max_det
        self.device = device
        self._model: YOLO | None = None

    def load(self) -> YOLO:
        """Load the model if not already loaded."""
        if self._model is None:
            path = _resolve_model_path(self.model_path)
            try:
                self._model = YOLO(path)
            except Exception as e:
                raise DetectorUnavailable(f"failed to load YOLO model {path!r}: {e}", cause=e) from e
            logger.info(f"Loaded YOLO model from {path}")
        return self._model

    def _predict(self, model: YOLO, image: np.ndarray):
        kwargs = dict(conf=self.conf, iou=self.iou, imgsz=self.imgsz, max_det=self.max_det, verbose=False)
        if self.device is not None:
            kwargs["device"] = self.device
        return model.predict(image, **kwargs)[0]

    def _raw_boxes(self, model: YOLO, image: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Run whole-image or tiled inference; returns (xyxy, scores, classes)."""
        H, W = image.shape[:2]
        tile = self.tile if self.tile else max(H, W)
        step = max(1, tile - self.overlap)

        all_boxes: list[np.ndarray] = []
        all_scores: list[np.ndarray] = []
        all_clses: list[np.ndarray] = []

        for y0 in range(0, H, step):
            for x0 in range(0, W, step):
                y1 = min(y0 + tile, H)
                x1 = min(x0 + tile, W)
                patch = image[y0:y1, x0:x1]

                r = self._predict(model, patch)
                if r.boxes is None or len(r.boxes) == 0:
                    continue

                boxes = r.boxes.xyxy.cpu().numpy()
                # shift patch coords -> global coords
                boxes[:, [0, 2]] += x0
                boxes[:, [1, 3]] += y0

                all_boxes.append(boxes)
                all_scores.append(r.boxes.conf.cpu().numpy())
                all_clses.append(r.boxes.cls.cpu().numpy())

                if x1 >= W:
                    break
            if y0 + tile >= H:
                break

        if not all_boxes:
            empty = np.zeros((0,), dtype=np.float32)
            return np.zeros((0, 4), dtype=np.float32), empty, empty

        boxes = np.concatenate(all_boxes, axis=0)
        scores = np.concatenate(all_scores, axis=0)
        clses = np.concatenate(all_clses, axis=0)

        if self.tile:
            # Global NMS to dedupe overlapping-tile detections
            boxes_t = torch.tensor(boxes, dtype=torch.float32)
            scores_t = torch.tensor(scores, dtype=torch.float32)
            keep = nms(boxes_t, scores_t, iou_threshold=self.merge_iou).cpu().numpy()
            boxes, scores, clses = boxes[keep], scores[keep], clses[keep]

        return boxes, scores, clses

    def detect(self, image: np.ndarray) -> list[VehicleDetection]:
        """Detect objects in a BGR image.

        Returns every class the model reports; class filtering is left to
        the caller (see :func:`parkscan.vehicles.filter_vehicle_detections`).

        Raises:
            DetectorUnavailable: If the model cannot be loaded or inference fails.
        """
        model = self.load()

        # Strip alpha if present
        if image.ndim == 3 and image.shape[2] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
        elif image.ndim == 2:
            image = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

        try:
            boxes, scores, clses = self._raw_boxes(model, image)
        except Exception as e:
            raise DetectorUnavailable(f"YOLO inference failed: {e}", cause=e) from e

        names = getattr(model, "names", {}) or {}
        out: list[VehicleDetection] = []
        for (x1, y1, x2, y2), score, cls in zip(boxes, scores, clses):
            cls_id = int(cls)
            out.append(
                VehicleDetection(
                    class_id=cls_id,
                    confidence=float(score),
                    box=Rect.from_xyxy(x1, y1, x2, y2),
                    class_name=str(names.get(cls_id, cls_id)).lower(),
                )
            )
        return out
