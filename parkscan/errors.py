"""Exception types raised by the analysis pipeline."""

from __future__ import annotations


class ParkScanError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class InvalidImage(ParkScanError):
    """Input image is unreadable, empty, or has a zero dimension."""


class ConfigurationError(ParkScanError, ValueError):
    """An analysis parameter is out of range or inconsistent."""


class StageError(ParkScanError):
    """A pipeline stage failed; the whole run is aborted.

    Attributes:
        stage: Name of the failing stage (see ``parkscan.pipeline.Stage``).
        cause: The underlying exception, if any.
    """

    def __init__(self, stage: str, message: str | None = None, cause: BaseException | None = None):
        self.stage = stage
        self.cause = cause
        if message is None:
            message = f"{cause}" if cause is not None else "stage failed"
        super().__init__(f"[{stage}] {message}")


class DetectorUnavailable(StageError):
    """The vehicle detector could not be loaded or failed during inference."""

    def __init__(self, message: str | None = None, cause: BaseException | None = None):
        super().__init__("vehicle_detection", message, cause)


class AnalysisCancelled(ParkScanError):
    """Cancellation was honored before ``stage``, or after it when it is the last."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"analysis cancelled before stage {stage!r}")
