"""Frame-to-inference pipeline.

Orchestrates the full flow: camera frame → landmark extraction → payload
→ cooldown gate → remote classification → prediction state.

Ticks run on the capture thread and never wait for the network: an
admitted request is handed to a single-worker executor and its completion
comes back through a future callback. Every stop/switch bumps an epoch
counter; a completion carrying an older epoch is dropped, so a response
arriving after teardown can never resurrect the prediction.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial
from threading import Lock, RLock
from typing import Any

from loguru import logger

from core.errors import ExtractionFailure, InferenceError, InvalidSessionTransition
from core.inference.client import InferenceClient
from core.inference.payload import PayloadBuilder
from core.inference.throttle import Admission, RequestThrottler
from core.session.camera import CaptureFactory, CameraSession, EngineFactory, StateListener
from core.types import (
    DeviceSelector,
    EngineOptions,
    ExtractionResult,
    PayloadMode,
    PipelineState,
    PipelineStats,
    PredictionState,
    SessionState,
    VideoFrame,
)
from core.vision.preprocessor import FramePreprocessor, PreprocessConfig

PredictionListener = Callable[[PredictionState], None]
ResultListener = Callable[[ExtractionResult], None]


class TickOutcome(Enum):
    """What a single frame tick did."""
    INACTIVE = "inactive"
    EXTRACTION_FAILED = "extraction_failed"
    NO_HANDS = "no_hands"
    REJECTED = "rejected"
    DISPATCHED = "dispatched"


@dataclass
class PipelineConfig:
    """Configuration for the sign pipeline.

    Attributes:
        mode: Send landmark vectors or whole frames. Fixed for the pipeline's life.
        max_hands: Maximum number of hands to track (1 or 2).
        model_complexity: Extraction model complexity (0 = lite, 1 = full).
        min_detection_confidence: Minimum confidence for hand detection.
        min_tracking_confidence: Minimum confidence for landmark tracking.
        cooldown_ms: Minimum time between dispatched requests.
        draw_overlay: Draw landmarks onto frames (sent along in image mode).
        image_format: Encoding for image mode ("jpeg" or "png").
        jpeg_quality: JPEG quality for image mode.
        max_dimension: Downscale frames whose longest side exceeds this.
    """
    mode: PayloadMode = PayloadMode.LANDMARKS
    max_hands: int = 1
    model_complexity: int = 1
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.7
    cooldown_ms: float = 1000.0
    draw_overlay: bool = True
    image_format: str = "jpeg"
    jpeg_quality: int = 90
    max_dimension: int = 1280

    @property
    def engine_options(self) -> EngineOptions:
        return EngineOptions(
            max_hands=self.max_hands,
            model_complexity=self.model_complexity,
            min_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
        )


class PipelineController:
    """Owns the observable prediction and drives one tick per camera frame.

    The camera session is private: every lifecycle change goes through the
    controller so that stop and switch always invalidate in-flight requests.

    Usage:
        >>> controller = PipelineController.create(config, capture_factory, MediaPipeHandEngine, client)
        >>> controller.start("user")
        >>> controller.prediction.current_sign  # updated in the background
        >>> controller.switch_device("environment")
        >>> controller.close()
    """

    def __init__(
        self,
        session: CameraSession,
        builder: PayloadBuilder,
        throttler: RequestThrottler,
        client: InferenceClient,
        executor: Executor | None = None,
        clock: Callable[[], float] = time.time,
        on_prediction: PredictionListener | None = None,
        on_result: ResultListener | None = None,
    ) -> None:
        """Wire the pipeline together.

        Args:
            session: Camera session; its frames are routed to :meth:`on_frame`.
            builder: Payload builder (its mode is the pipeline's mode).
            throttler: Cooldown gate.
            client: Classification client, called on the executor.
            executor: Where requests run. Defaults to a private single-worker pool.
            clock: Wall clock used to stamp ``PredictionState.last_updated``.
            on_prediction: Called after every successful prediction update.
            on_result: Called with each extraction result (e.g. for display).
        """
        self._session = session
        self._builder = builder
        self._throttler = throttler
        self._client = client
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="classify")
        self._clock = clock
        self._on_prediction = on_prediction
        self._on_result = on_result

        self._state = PipelineState.IDLE
        self._epoch = 0
        self._prediction = PredictionState()
        self._stats = PipelineStats()
        self._lock = Lock()
        self._lifecycle_lock = RLock()

        self._session.set_frame_handler(self.on_frame)

    @classmethod
    def create(
        cls,
        config: PipelineConfig,
        capture_factory: CaptureFactory,
        engine_factory: EngineFactory,
        client: InferenceClient,
        session_listener: StateListener | None = None,
        throttle_clock: Callable[[], float] = time.monotonic,
        **kwargs: Any,
    ) -> PipelineController:
        """Build the session, builder and throttler from a :class:`PipelineConfig`.

        ``session_listener`` receives every camera session state change.
        """
        session = CameraSession(
            capture_factory,
            engine_factory,
            engine_options=config.engine_options,
            preprocessor=FramePreprocessor(PreprocessConfig(max_dimension=config.max_dimension)),
            draw_overlay=config.draw_overlay,
            state_listener=session_listener,
        )
        builder = PayloadBuilder(config.mode, config.image_format, config.jpeg_quality)
        throttler = RequestThrottler(config.cooldown_ms, clock=throttle_clock)
        return cls(session, builder, throttler, client, **kwargs)

    # ── Observable state ─────────────────────────────────────

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def session_state(self) -> SessionState:
        return self._session.state

    @property
    def dropped_frames(self) -> int:
        """Frames dropped because the previous tick was still running."""
        return self._session.dropped_frames

    @property
    def mode(self) -> PayloadMode:
        return self._builder.mode

    @property
    def prediction(self) -> PredictionState:
        return self._prediction

    @property
    def in_flight(self) -> bool:
        return self._throttler.in_flight

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def stats(self) -> dict[str, Any]:
        with self._lock:
            return self._stats.as_dict()

    # ── Lifecycle ────────────────────────────────────────────

    def start(self, selector: DeviceSelector) -> PipelineState:
        """Start the camera and begin classifying.

        Raises:
            DeviceUnavailable: The camera could not be opened; stays IDLE.
            InvalidSessionTransition: The session is already running.
        """
        with self._lifecycle_lock:
            self._session.start(selector)
            self._throttler.reset()
            with self._lock:
                self._state = PipelineState.READY
            logger.info(f"Pipeline ready | mode={self.mode.value} | device={selector!r}")
            return self._state

    def stop(self) -> PipelineState:
        """Go IDLE now. Any in-flight response will be ignored. Idempotent."""
        with self._lifecycle_lock:
            self._invalidate()
            self._session.stop()
            return self._state

    def switch_device(self, selector: DeviceSelector) -> PipelineState:
        """Move to another camera, keeping the prediction and resetting the cooldown.

        Raises:
            InvalidSessionTransition: The camera is not active.
            DeviceUnavailable: The new camera could not be opened; stays IDLE.
        """
        with self._lifecycle_lock:
            if not self._session.is_active:
                raise InvalidSessionTransition(
                    f"Cannot switch device from {self._session.state.name}"
                )
            self._invalidate()
            self._session.switch_device(selector)
            self._throttler.reset()
            with self._lock:
                self._state = PipelineState.READY
            logger.info(f"Pipeline ready on new device {selector!r}")
            return self._state

    def close(self) -> None:
        """Stop and release the executor and HTTP client."""
        self.stop()
        if self._owns_executor and isinstance(self._executor, ThreadPoolExecutor):
            self._executor.shutdown(wait=False, cancel_futures=True)
        self._client.close()

    def _invalidate(self) -> None:
        with self._lock:
            self._epoch += 1
            self._state = PipelineState.IDLE
        self._throttler.reset()

    # ── Per-frame tick ───────────────────────────────────────

    def on_frame(self, frame: VideoFrame) -> TickOutcome:
        """Run one tick: extract, build, admit, dispatch. Never blocks on the network."""
        extractor = self._session.extractor
        if self._state is PipelineState.IDLE or extractor is None:
            return TickOutcome.INACTIVE

        with self._lock:
            self._stats.frames += 1

        try:
            result = extractor.extract(frame)
        except ExtractionFailure as e:
            with self._lock:
                self._stats.extraction_failures += 1
            logger.warning(f"Skipping frame: {e}")
            return TickOutcome.EXTRACTION_FAILED

        if self._on_result is not None:
            self._on_result(result)

        try:
            payload = self._builder.build(result)
        except ValueError as e:
            with self._lock:
                self._stats.extraction_failures += 1
            logger.warning(f"Skipping frame, payload not built: {e}")
            return TickOutcome.EXTRACTION_FAILED

        if payload is None:
            with self._lock:
                self._stats.no_hands += 1
            return TickOutcome.NO_HANDS

        if self._throttler.try_admit() is Admission.REJECTED:
            with self._lock:
                self._stats.rejected += 1
            logger.trace("Frame dropped: request cooling down")
            return TickOutcome.REJECTED

        with self._lock:
            if self._state is not PipelineState.READY:
                # Stopped while this tick was running
                self._throttler.release()
                return TickOutcome.INACTIVE
            epoch = self._epoch
            self._state = PipelineState.DISPATCHING
            self._stats.dispatched += 1

        try:
            future = self._executor.submit(self._client.classify, payload)
        except RuntimeError as e:
            logger.error(f"Could not dispatch classification: {e}")
            with self._lock:
                if epoch == self._epoch:
                    self._throttler.release()
                    self._state = PipelineState.READY
                self._stats.failed += 1
            return TickOutcome.INACTIVE

        with self._lock:
            if epoch == self._epoch:
                self._state = PipelineState.READY
        future.add_done_callback(partial(self._on_complete, epoch, time.perf_counter()))
        return TickOutcome.DISPATCHED

    def _on_complete(self, epoch: int, started: float, future: Future[str]) -> None:
        """Apply a finished request, unless the session has moved on since."""
        updated: PredictionState | None = None
        with self._lock:
            if epoch != self._epoch:
                self._stats.stale_discarded += 1
                logger.debug(f"Discarding stale classification result (epoch {epoch} != {self._epoch})")
                return

            self._throttler.release()
            self._stats.last_latency_ms = (time.perf_counter() - started) * 1000.0

            if future.cancelled():
                self._stats.failed += 1
                return

            error = future.exception()
            if error is None:
                sign = future.result()
                self._prediction = PredictionState(current_sign=sign, last_updated=self._clock())
                self._stats.succeeded += 1
                updated = self._prediction
            elif isinstance(error, InferenceError):
                self._stats.failed += 1
                logger.warning(f"Classification failed, keeping last sign: {error}")
            else:
                self._stats.failed += 1
                logger.opt(exception=error).error("Unexpected error during classification")

        if updated is not None:
            logger.info(f"Predicted sign: {updated.current_sign}")
            if self._on_prediction is not None:
                self._on_prediction(updated)

    def __enter__(self) -> PipelineController:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
