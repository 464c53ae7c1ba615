"""End-to-end analysis of one parking-lot image.

Stages run strictly in order, each consuming the previous stage's output:

1. preprocess        - line mask
2. exclusion         - restricted-zone mask
3. candidates        - geometry-filtered slot rectangles
4. deduplicate       - final slot list
5. vehicle_detection - detector output filtered to vehicle classes
6. occupancy         - per-slot status
7. aggregate         - summary counts

Cancellation is checked before every stage and once after the last. Any
stage failure aborts the run with a single error naming the stage; no
partial result is returned.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import numpy as np

from parkscan.config import AnalysisConfig, DEFAULT_CONFIG
from parkscan.errors import (
    AnalysisCancelled,
    DetectorUnavailable,
    ParkScanError,
    StageError,
)
from parkscan.exclusion import build_exclusion_mask
from parkscan.imaging import ensure_bgr
from parkscan.occupancy import classify_occupancy, mark_all_available, summarize
from parkscan.preprocess import build_line_mask
from parkscan.slots import deduplicate_slots, extract_slot_candidates
from parkscan.types import AnalysisResult, SlotReport, VehicleDetection
from parkscan.vehicles import VehicleDetector, filter_vehicle_detections

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    PREPROCESS = "preprocess"
    EXCLUSION = "exclusion"
    CANDIDATES = "candidates"
    DEDUPLICATE = "deduplicate"
    VEHICLE_DETECTION = "vehicle_detection"
    OCCUPANCY = "occupancy"
    AGGREGATE = "aggregate"


class CancelToken:
    """Cooperative cancellation flag shared between a caller and running analyses."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise AnalysisCancelled(stage)


@dataclass(frozen=True)
class AnalysisOutcome:
    """Either a complete result or the single error that ended the run."""

    result: AnalysisResult | None = None
    error: ParkScanError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_stage(stage: Stage, cancel: CancelToken | None, fn: Callable[..., Any], *args: Any) -> Any:
    if cancel is not None:
        cancel.raise_if_cancelled(stage.value)
    try:
        return fn(*args)
    except ParkScanError:
        raise
    except Exception as e:
        raise StageError(stage.value, cause=e) from e


def _detect_vehicles(
    detector: VehicleDetector | None,
    image: np.ndarray,
    config: AnalysisConfig,
) -> list[VehicleDetection]:
    if detector is None:
        raise DetectorUnavailable("no vehicle detector configured")
    try:
        detections = list(detector.detect(image))
        for d in detections:
            if not isinstance(d, VehicleDetection):
                raise TypeError(f"expected VehicleDetection, got {type(d).__name__}")
        return filter_vehicle_detections(detections, config.vehicle_class_ids)
    except DetectorUnavailable:
        raise
    except Exception as e:
        raise DetectorUnavailable(f"vehicle detector failed: {e}", cause=e) from e


def analyze_image(
    image: np.ndarray,
    detector: VehicleDetector | None,
    config: AnalysisConfig = DEFAULT_CONFIG,
    cancel: CancelToken | None = None,
    keep_masks: bool = False,
) -> AnalysisResult:
    """Detect parking slots in an aerial image and classify their occupancy.

    Args:
        image: BGR uint8 image (gray and BGRA are accepted and converted).
        detector: Vehicle detector; its output is filtered to
                  ``config.vehicle_class_ids``.
        config: Analysis parameters; validated on construction.
        cancel: Optional token checked before every stage.
        keep_masks: Attach the line and exclusion masks to the result.

    Returns:
        AnalysisResult with slots in acceptance order and summary counts.

    Raises:
        InvalidImage: Before any stage runs, for unusable input.
        DetectorUnavailable: Detector failed and degraded mode is off.
        StageError: Any other stage failure.
        AnalysisCancelled: Cancellation observed at a stage boundary.
    """
    image = ensure_bgr(image)

    try:
        line_mask = _run_stage(Stage.PREPROCESS, cancel, build_line_mask, image, config)
        exclusion_mask = _run_stage(Stage.EXCLUSION, cancel, build_exclusion_mask, image, config)
        candidates = _run_stage(
            Stage.CANDIDATES, cancel, extract_slot_candidates, line_mask, exclusion_mask, config
        )
        slots = _run_stage(Stage.DEDUPLICATE, cancel, deduplicate_slots, candidates, config)

        degraded = False
        try:
            vehicles = _run_stage(Stage.VEHICLE_DETECTION, cancel, _detect_vehicles, detector, image, config)
        except DetectorUnavailable as e:
            if not config.degrade_on_detector_failure:
                raise
            logger.warning(f"Vehicle detection unavailable, reporting all slots AVAILABLE: {e}")
            vehicles = []
            degraded = True

        if degraded:
            results = _run_stage(Stage.OCCUPANCY, cancel, mark_all_available, slots)
        else:
            results = _run_stage(Stage.OCCUPANCY, cancel, classify_occupancy, slots, vehicles, config)
        summary = _run_stage(Stage.AGGREGATE, cancel, summarize, results)
        if cancel is not None:
            cancel.raise_if_cancelled(Stage.AGGREGATE.value)
    except AnalysisCancelled as e:
        logger.info(f"Analysis cancelled at stage {e.stage}")
        raise
    except StageError as e:
        logger.error(f"Analysis failed in stage {e.stage}: {e}")
        raise

    reports = [
        SlotReport(
            id=slot.id,
            x=slot.rect.x,
            y=slot.rect.y,
            w=slot.rect.w,
            h=slot.rect.h,
            status=res.status,
        )
        for slot, res in zip(slots, results)
    ]
    logger.info(
        f"Analyzed {image.shape[1]}x{image.shape[0]} image: {summary.total} slots, "
        f"{summary.occupied} occupied, {summary.available} available "
        f"({summary.occupancy_rate_percent:.1f}%)"
    )
    return AnalysisResult(
        slots=reports,
        summary=summary,
        occupancy_degraded=degraded,
        vehicles=vehicles,
        line_mask=line_mask if keep_masks else None,
        exclusion_mask=exclusion_mask if keep_masks else None,
    )


def try_analyze_image(
    image: np.ndarray,
    detector: VehicleDetector | None,
    config: AnalysisConfig = DEFAULT_CONFIG,
    cancel: CancelToken | None = None,
    keep_masks: bool = False,
) -> AnalysisOutcome:
    """Like :func:`analyze_image`, but returns the error instead of raising it.

    Only ParkScanError subclasses are captured; programming errors still
    propagate.
    """
    try:
        return AnalysisOutcome(result=analyze_image(image, detector, config, cancel, keep_masks))
    except ParkScanError as e:
        return AnalysisOutcome(error=e)
