"""Feeding pushed frames to the detector.

Sensors push frames faster than the detector may finish them.  The
runner keeps at most one frame waiting: a newer frame replaces the one
still waiting, so the detector always works on the latest data and the
backlog never grows.  Frames are processed one at a time on a single
worker thread; stopping the runner lets the frame in progress finish
and discards the waiting one.
"""

import threading
import time
from typing import TYPE_CHECKING, Callable, List, Optional

import numpy as np

from ..utils.logging import get_logger
from .detections import Detection

if TYPE_CHECKING:
    from .detector import Object3dDetector


logger = get_logger(__name__)


class FrameRateMeter:
    """Count processed frames and report the rate every `window` frames."""

    def __init__(self, window: int = 10, clock: Callable[[], float] = time.perf_counter):
        self.window = window
        self.clock = clock
        self._frames = 0
        self._start: Optional[float] = None

    def tick(self) -> Optional[float]:
        """Record one processed frame.

        Returns
        -------
        float or None
            Frames per second over the last window, when one is complete.
        """
        now = self.clock()
        if self._start is None:
            self._start = now
            self._frames = 0
            return None
        self._frames += 1
        if self._frames < self.window:
            return None
        elapsed = now - self._start
        fps = self._frames / elapsed if elapsed > 0 else float('inf')
        self._start = now
        self._frames = 0
        return fps


class LatestFrameRunner:
    """Run a detector on a worker thread with a latest-wins frame slot.

    Parameters
    ----------
    detector : Object3dDetector
        Detector used for every frame.
    on_result : callable
        Called on the worker thread with each frame's detections.
    print_fps : bool, optional
        Log the processing rate every 10 frames.
    """

    def __init__(
        self,
        detector: "Object3dDetector",
        on_result: Callable[[List[Detection]], None],
        print_fps: bool = False,
    ):
        self.detector = detector
        self.on_result = on_result
        self.meter = FrameRateMeter() if print_fps else None
        self.processed = 0
        self.dropped = 0
        self._cond = threading.Condition()
        self._pending: Optional[np.ndarray] = None
        self._stopping = False
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_detector(
        cls,
        detector: "Object3dDetector",
        on_result: Callable[[List[Detection]], None],
    ) -> "LatestFrameRunner":
        """Create a runner that follows the detector's `print_fps` setting."""
        return cls(detector, on_result, print_fps=detector.config.print_fps)

    def start(self) -> "LatestFrameRunner":
        if self._thread is not None:
            raise RuntimeError("runner already started")
        self._thread = threading.Thread(target=self._run, name="object3d-detector", daemon=True)
        self._thread.start()
        return self

    def submit(self, points: np.ndarray) -> bool:
        """Offer a frame; returns False once the runner is stopping."""
        with self._cond:
            if self._stopping:
                return False
            if self._pending is not None:
                self.dropped += 1
            self._pending = points
            self._cond.notify()
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish the frame in progress, drop the waiting one, join."""
        with self._cond:
            self._stopping = True
            if self._pending is not None:
                self.dropped += 1
                self._pending = None
            self._cond.notify()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def stopping(self) -> bool:
        with self._cond:
            return self._stopping

    def __enter__(self) -> "LatestFrameRunner":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _next_frame(self) -> Optional[np.ndarray]:
        with self._cond:
            while self._pending is None and not self._stopping:
                self._cond.wait()
            if self._stopping:
                return None
            frame, self._pending = self._pending, None
            return frame

    def _run(self) -> None:
        while True:
            frame = self._next_frame()
            if frame is None:
                return
            try:
                detections = self.detector.process(frame)
            except Exception:
                logger.exception("Frame processing failed, frame dropped")
                continue
            self.processed += 1
            try:
                self.on_result(detections)
            except Exception:
                logger.exception("Result callback failed, detections dropped")
            if self.meter is not None:
                fps = self.meter.tick()
                if fps is not None:
                    logger.info("fps = %.2f", fps)
