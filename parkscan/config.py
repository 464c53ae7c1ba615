"""Analysis configuration: one immutable record threaded through every stage."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Mapping
from typing import Any

from parkscan.errors import ConfigurationError

# COCO ids: car, bus, truck
DEFAULT_VEHICLE_CLASS_IDS = (2, 5, 7)


@dataclass(frozen=True)
class ColorRange:
    """Inclusive HSV bounds (OpenCV scale: H 0-179, S and V 0-255)."""

    lower: tuple[int, int, int] = (20, 80, 80)
    upper: tuple[int, int, int] = (35, 255, 255)

    def __post_init__(self):
        try:
            if len(self.lower) != 3 or len(self.upper) != 3:
                raise ConfigurationError("color range bounds must have 3 components (H, S, V)")
            object.__setattr__(self, "lower", tuple(int(v) for v in self.lower))
            object.__setattr__(self, "upper", tuple(int(v) for v in self.upper))
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid color range: {e}") from e
        for name, limit, lo, hi in zip("HSV", (179, 255, 255), self.lower, self.upper):
            if not (0 <= lo <= limit and 0 <= hi <= limit):
                raise ConfigurationError(f"{name} bounds must lie in [0, {limit}], got {lo}..{hi}")
            if lo > hi:
                raise ConfigurationError(f"{name} lower bound {lo} exceeds upper bound {hi}")


# Upper-case constant names accepted by from_dict.
_ALIASES = {
    "MIN_SLOT_AREA": "min_slot_area",
    "MAX_SLOT_AREA": "max_slot_area",
    "MIN_ASPECT_RATIO": "min_aspect_ratio",
    "MAX_ASPECT_RATIO": "max_aspect_ratio",
    "POLY_EPSILON_FACTOR": "poly_epsilon_factor",
    "IOU_THRESHOLD": "occupancy_iou_threshold",
}


@dataclass(frozen=True)
class AnalysisConfig:
    """Tuning parameters for slot detection and occupancy classification.

    Defaults are the tuned production values. Instances validate
    themselves on construction and cannot be mutated; use :meth:`replace`
    to derive a modified copy.
    """

    # Slot geometry filters
    min_slot_area: float = 2500
    max_slot_area: float = 7000
    min_aspect_ratio: float = 0.2
    max_aspect_ratio: float = 0.7
    poly_epsilon_factor: float = 0.03
    min_polygon_vertices: int = 4
    max_polygon_vertices: int = 6

    # Line mask
    blur_kernel: int = 5
    threshold_block_size: int = 19
    threshold_constant: float = 3
    open_kernel: int = 3
    open_iterations: int = 1

    # Restricted (yellow) zones
    exclusion_color: ColorRange = field(default_factory=ColorRange)
    exclusion_dilate_kernel: int = 7
    exclusion_dilate_iterations: int = 2

    # Deduplication and occupancy
    dedup_iou_threshold: float = 0.6
    dedup_center_factor: float = 0.5
    occupancy_iou_threshold: float = 0.10
    vehicle_class_ids: tuple[int, ...] = DEFAULT_VEHICLE_CLASS_IDS
    degrade_on_detector_failure: bool = False

    def __post_init__(self):
        try:
            object.__setattr__(self, "vehicle_class_ids", tuple(int(c) for c in self.vehicle_class_ids))
            if isinstance(self.exclusion_color, Mapping):
                object.__setattr__(self, "exclusion_color", ColorRange(**self.exclusion_color))
            self.validate()
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid configuration: {e}") from e

    def validate(self) -> None:
        """Raise ConfigurationError on any inconsistent or out-of-range field."""
        if self.min_slot_area < 0:
            raise ConfigurationError("min_slot_area must be non-negative")
        if self.min_slot_area > self.max_slot_area:
            raise ConfigurationError(
                f"min_slot_area ({self.min_slot_area}) exceeds max_slot_area ({self.max_slot_area})"
            )
        if self.min_aspect_ratio <= 0:
            raise ConfigurationError("min_aspect_ratio must be positive")
        if self.min_aspect_ratio > self.max_aspect_ratio:
            raise ConfigurationError(
                f"min_aspect_ratio ({self.min_aspect_ratio}) exceeds max_aspect_ratio ({self.max_aspect_ratio})"
            )
        if self.poly_epsilon_factor <= 0:
            raise ConfigurationError("poly_epsilon_factor must be positive")
        if self.min_polygon_vertices < 3:
            raise ConfigurationError("min_polygon_vertices must be at least 3")
        if self.min_polygon_vertices > self.max_polygon_vertices:
            raise ConfigurationError("min_polygon_vertices exceeds max_polygon_vertices")

        for name in ("blur_kernel", "open_kernel", "exclusion_dilate_kernel"):
            size = getattr(self, name)
            if size <= 0 or size % 2 == 0:
                raise ConfigurationError(f"{name} must be a positive odd size, got {size}")
        if self.threshold_block_size < 3 or self.threshold_block_size % 2 == 0:
            raise ConfigurationError(
                f"threshold_block_size must be odd and >= 3, got {self.threshold_block_size}"
            )
        if self.open_iterations < 0 or self.exclusion_dilate_iterations < 0:
            raise ConfigurationError("iteration counts must be non-negative")

        for name in ("dedup_iou_threshold", "occupancy_iou_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")
        if self.dedup_center_factor < 0:
            raise ConfigurationError("dedup_center_factor must be non-negative")
        if not isinstance(self.exclusion_color, ColorRange):
            raise ConfigurationError("exclusion_color must be a ColorRange")

    def replace(self, **changes: Any) -> "AnalysisConfig":
        """Return a validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["exclusion_color"] = {
            "lower": list(self.exclusion_color.lower),
            "upper": list(self.exclusion_color.upper),
        }
        data["vehicle_class_ids"] = list(self.vehicle_class_ids)
        return data

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "AnalysisConfig":
        """Build a config from a mapping of field names.

        Accepts the upper-case constant names (``MIN_SLOT_AREA``,
        ``IOU_THRESHOLD``, ...) as aliases. Unknown keys are rejected.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"unknown configuration key: {key!r}")
            if name in kwargs:
                raise ConfigurationError(f"configuration key given twice: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_json(cls, json_path: str | Path) -> "AnalysisConfig":
        """Load a configuration from a JSON file."""
        with open(json_path, "r", encoding="utf-8") as f:
            try:
                values = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"invalid JSON in {json_path}: {e}") from e
        if not isinstance(values, dict):
            raise ConfigurationError(f"{json_path} must contain a JSON object")
        return cls.from_dict(values)


DEFAULT_CONFIG = AnalysisConfig()
