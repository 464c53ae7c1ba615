"""Concurrent analysis of independent images.

One task analyzes one whole image. Detector access can be funneled through a
single worker thread so a model that is not safe for concurrent calls is
only ever invoked from one place.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Sequence

import numpy as np

from parkscan.config import AnalysisConfig, DEFAULT_CONFIG
from parkscan.pipeline import AnalysisOutcome, CancelToken, try_analyze_image
from parkscan.types import VehicleDetection
from parkscan.vehicles import VehicleDetector

logger = logging.getLogger(__name__)

_STOP = object()


class SerializedDetector:
    """Wrap a detector behind a single-owner request queue.

    A daemon thread owns the wrapped detector and serves ``detect`` requests
    one at a time; callers block on a Future for their own result. Errors
    raised by the detector are re-raised in the calling thread. A
    BaseException that is not an Exception also stops the worker; queued
    and later calls then raise RuntimeError.
    """

    def __init__(self, detector: VehicleDetector):
        self._detector = detector
        self._requests: queue.Queue = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._serve, name="parkscan-detector", daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while True:
            item = self._requests.get()
            if item is _STOP:
                break
            image, future = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(self._detector.detect(image))
            except BaseException as e:
                future.set_exception(e)
                if not isinstance(e, Exception):
                    logger.error(f"Detector worker stopped by {type(e).__name__}")
                    self._fail_pending()
                    return

    def _fail_pending(self) -> None:
        with self._lock:
            self._closed = True
        while True:
            try:
                item = self._requests.get_nowait()
            except queue.Empty:
                return
            if item is not _STOP:
                item[1].set_exception(RuntimeError("SerializedDetector worker has stopped"))

    def detect(self, image: np.ndarray) -> list[VehicleDetection]:
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise RuntimeError("SerializedDetector is closed")
            self._requests.put((image, future))
        return future.result()

    def close(self) -> None:
        """Stop the worker after queued requests have been served."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._requests.put(_STOP)
        self._thread.join()

    def __enter__(self) -> "SerializedDetector":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def analyze_many(
    images: Sequence[np.ndarray],
    detector: VehicleDetector | None,
    config: AnalysisConfig = DEFAULT_CONFIG,
    max_workers: int | None = None,
    cancel: CancelToken | None = None,
    serialize_detector: bool = True,
) -> list[AnalysisOutcome]:
    """Analyze several images concurrently.

    Args:
        images: Images to analyze; each run is independent.
        detector: Shared vehicle detector.
        config: Analysis parameters shared by all runs.
        max_workers: Pool size; defaults to ``os.cpu_count()``.
        cancel: Token checked by every run between stages.
        serialize_detector: Route detector calls through one worker thread.

    Returns:
        One outcome per input image, in input order.
    """
    if not images:
        return []

    workers = max(1, min(len(images), max_workers or os.cpu_count() or 1))
    wrapped = SerializedDetector(detector) if (serialize_detector and detector is not None) else None
    shared = wrapped if wrapped is not None else detector

    try:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="parkscan") as pool:
            futures = [pool.submit(try_analyze_image, image, shared, config, cancel) for image in images]
            outcomes = [f.result() for f in futures]
    finally:
        if wrapped is not None:
            wrapped.close()

    failed = sum(1 for o in outcomes if not o.ok)
    logger.info(f"Analyzed {len(images)} images with {workers} workers ({failed} failed)")
    return outcomes
