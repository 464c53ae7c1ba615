"""ParkScan: parking-slot detection and occupancy classification from aerial images."""

from parkscan.config import AnalysisConfig, ColorRange, DEFAULT_CONFIG
from parkscan.errors import (
    ParkScanError,
    InvalidImage,
    ConfigurationError,
    StageError,
    DetectorUnavailable,
    AnalysisCancelled,
)
from parkscan.geometry import Rect, iou
from parkscan.types import (
    SlotCandidate,
    Slot,
    VehicleDetection,
    OccupancyStatus,
    OccupancyResult,
    AnalysisSummary,
    SlotReport,
    AnalysisResult,
)
from parkscan.preprocess import build_line_mask
from parkscan.exclusion import build_exclusion_mask
from parkscan.slots import extract_slot_candidates, deduplicate_slots
from parkscan.vehicles import VehicleDetector, filter_vehicle_detections
from parkscan.occupancy import classify_occupancy, summarize
from parkscan.pipeline import (
    Stage,
    CancelToken,
    AnalysisOutcome,
    analyze_image,
    try_analyze_image,
)
from parkscan.runner import SerializedDetector, analyze_many
from parkscan.imaging import decode_image, load_image

__all__ = [
    "AnalysisConfig",
    "ColorRange",
    "DEFAULT_CONFIG",
    "ParkScanError",
    "InvalidImage",
    "ConfigurationError",
    "StageError",
    "DetectorUnavailable",
    "AnalysisCancelled",
    "Rect",
    "iou",
    "SlotCandidate",
    "Slot",
    "VehicleDetection",
    "OccupancyStatus",
    "OccupancyResult",
    "AnalysisSummary",
    "SlotReport",
    "AnalysisResult",
    "build_line_mask",
    "build_exclusion_mask",
    "extract_slot_candidates",
    "deduplicate_slots",
    "VehicleDetector",
    "filter_vehicle_detections",
    "classify_occupancy",
    "summarize",
    "Stage",
    "CancelToken",
    "AnalysisOutcome",
    "analyze_image",
    "try_analyze_image",
    "SerializedDetector",
    "analyze_many",
    "decode_image",
    "load_image",
]
