from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from sentiscope.errors import CameraPermissionError, RemoteAnalysisError
from sentiscope.face_emotion import FaceEmotionClassifier
from sentiscope.sentiment_types import FaceDetection, Frame

logger = logging.getLogger(__name__)

DetectionsHook = Callable[[list[FaceDetection]], None]


class FrameSource(Protocol):
    def open(self) -> None: ...

    def read(self) -> Optional[Frame]: ...

    def close(self) -> None: ...


class FaceAnalysisSession:
    """
    Recurring face emotion analysis over a frame source.

    - A timer fires every `interval_sec`; each firing runs one tick on its own
      worker thread
    - A tick that fires while the previous one is still waiting on the remote
      call is skipped, not queued
    - Frame reads and source.close() never overlap
    - stop() cancels the timer, closes the source, joins tick workers and
      drops any result that arrives afterwards
    """

    def __init__(
            self,
            source: FrameSource,
            classifier: FaceEmotionClassifier,
            interval_sec: float = 1.0,
            on_detections: Optional[DetectionsHook] = None,
            join_timeout_sec: float = 5.0,
    ):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be > 0")
        self._source = source
        self._classifier = classifier
        self._interval = interval_sec
        self._on_detections = on_detections
        self._join_timeout = join_timeout_sec

        self._in_flight = threading.Lock()
        self._state = threading.Lock()
        self._source_lock = threading.Lock()
        self._generation = 0
        self._running = False
        self._detections: list[FaceDetection] = []
        self._stop_event = threading.Event()
        self._timer: Optional[threading.Thread] = None
        self._workers: list[threading.Thread] = []
        self.skipped_ticks = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def detections(self) -> list[FaceDetection]:
        with self._state:
            return list(self._detections)

    def start(self, run_timer: bool = True) -> None:
        """
        Open the frame source and begin analysis.

        Raises:
            CameraPermissionError: the source could not be opened; the session
                stays stopped.
        """
        if self._running:
            return
        try:
            self._source.open()
        except (PermissionError, OSError) as e:
            logger.error("Camera access error: %s", e)
            raise CameraPermissionError("Unable to access camera. Please check permissions.") from e

        with self._state:
            self._generation += 1
            self._running = True
            self._detections = []
        self._stop_event = threading.Event()
        logger.info("Face analysis session started: interval=%.2fs", self._interval)

        if run_timer:
            self._timer = threading.Thread(
                target=self._run_timer,
                args=(self._stop_event,),
                name="face-analysis-timer",
                daemon=True,
            )
            self._timer.start()

    def stop(self) -> None:
        if not self._running:
            return
        with self._state:
            self._running = False
            self._generation += 1
            self._detections = []
        self._stop_event.set()

        timer = self._timer
        self._timer = None
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout=self._join_timeout)

        try:
            # Waits for a read in progress; later reads see the stale generation
            with self._source_lock:
                self._source.close()
        finally:
            self._join_workers()
            logger.info("Face analysis session stopped: skipped_ticks=%s", self.skipped_ticks)

    def tick(self) -> bool:
        """
        Analyze the current frame once.

        Returns False when the tick was skipped (session stopped or a previous
        tick still in flight).
        """
        if not self._in_flight.acquire(blocking=False):
            self.skipped_ticks += 1
            logger.debug("Previous frame still in flight; skipping tick")
            return False

        try:
            with self._state:
                if not self._running:
                    return False
                generation = self._generation

            detections = self._analyze_current_frame(generation)

            with self._state:
                if generation != self._generation:
                    logger.debug("Discarding result from a stopped session")
                    return True
                self._detections = detections

            if self._on_detections is not None:
                self._on_detections(list(detections))
            return True
        finally:
            self._in_flight.release()

    def _analyze_current_frame(self, generation: int) -> list[FaceDetection]:
        try:
            with self._source_lock:
                if generation != self._generation:
                    return []
                frame = self._source.read()
            if frame is None:
                return []
            return self._classifier.classify_frame(frame)
        except (RemoteAnalysisError, OSError) as e:
            logger.warning("Frame analysis failed: %s", e)
            return []

    def _run_timer(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            worker = threading.Thread(target=self.tick, name="face-analysis-tick", daemon=True)
            worker.start()
            self._workers = [w for w in self._workers if w.is_alive()] + [worker]
            stop_event.wait(self._interval)

    def _join_workers(self) -> None:
        workers, self._workers = self._workers, []
        for w in workers:
            if w is not threading.current_thread():
                w.join(timeout=self._join_timeout)
        alive = sum(1 for w in workers if w.is_alive())
        if alive:
            logger.warning("Tick workers still running after stop: %s", alive)

    def __enter__(self) -> "FaceAnalysisSession":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
