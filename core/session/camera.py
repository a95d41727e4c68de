"""Camera session lifecycle.

Owns the capture device and the extraction engine for the lifetime of one
start → stop cycle, and turns each delivered frame into one pipeline tick.

State machine::

    IDLE ──start──▶ STARTING ──device ready──▶ ACTIVE ──stop──▶ STOPPING ──▶ IDLE
    ACTIVE ──switch_device──▶ STOPPING ──▶ STARTING ──▶ ACTIVE
    STARTING ──(failure)──▶ STOPPING ──▶ IDLE
"""

from __future__ import annotations

from collections.abc import Callable
from threading import Lock, RLock
from typing import Any

from loguru import logger

from core.errors import DeviceUnavailable, InvalidSessionTransition
from core.types import (
    CaptureSource,
    DeviceSelector,
    EngineOptions,
    ExtractionEngine,
    FrameCallback,
    SessionState,
    VideoFrame,
)
from core.vision.extractor import FrameExtractor
from core.vision.preprocessor import FramePreprocessor

CaptureFactory = Callable[[DeviceSelector], CaptureSource]
EngineFactory = Callable[[], ExtractionEngine]
StateListener = Callable[[SessionState], None]


class CameraSession:
    """Exclusive owner of one capture device and one extraction engine.

    Both handles are acquired in :meth:`start` and released in :meth:`stop`;
    a failed start releases whatever it had acquired before raising.

    Frames arriving while a previous tick is still running are dropped, so
    the tick rate is capped by the slower of camera and engine.

    Usage:
        >>> session = CameraSession(capture_factory, MediaPipeHandEngine)
        >>> session.set_frame_handler(controller.on_frame)
        >>> session.start("user")
        >>> session.switch_device("environment")
        >>> session.stop()
    """

    def __init__(
        self,
        capture_factory: CaptureFactory,
        engine_factory: EngineFactory,
        engine_options: EngineOptions | None = None,
        preprocessor: FramePreprocessor | None = None,
        draw_overlay: bool = True,
        state_listener: StateListener | None = None,
    ) -> None:
        """Initialize an idle session.

        Args:
            capture_factory: Builds a capture source for a device selector.
            engine_factory: Builds a fresh, unconfigured extraction engine.
            engine_options: Options passed to the engine's ``configure``.
            preprocessor: Frame preparation shared by every device.
            draw_overlay: Draw landmarks onto extracted frames.
            state_listener: Called with every new :class:`SessionState`.
        """
        self._capture_factory = capture_factory
        self._engine_factory = engine_factory
        self._engine_options = engine_options or EngineOptions()
        self._preprocessor = preprocessor or FramePreprocessor()
        self._draw_overlay = draw_overlay
        self._state_listener = state_listener

        self._state = SessionState.IDLE
        self._selector: DeviceSelector | None = None
        self._capture: CaptureSource | None = None
        self._engine: ExtractionEngine | None = None
        self._extractor: FrameExtractor | None = None
        self._frame_handler: FrameCallback | None = None

        self._lifecycle_lock = RLock()
        self._tick_lock = Lock()
        self._dropped_frames = 0

    # ── Properties ───────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.ACTIVE

    @property
    def selector(self) -> DeviceSelector | None:
        """Selector of the device currently (or last) in use."""
        return self._selector

    @property
    def extractor(self) -> FrameExtractor | None:
        """Extractor bound to this session's engine; None unless ACTIVE."""
        return self._extractor

    @property
    def dropped_frames(self) -> int:
        return self._dropped_frames

    def set_frame_handler(self, handler: FrameCallback | None) -> None:
        """Register the per-frame tick. Called only while ACTIVE."""
        self._frame_handler = handler

    # ── Lifecycle ────────────────────────────────────────────

    def start(self, selector: DeviceSelector) -> SessionState:
        """Acquire engine and camera, then begin delivering frames.

        Returns:
            SessionState.ACTIVE on success.

        Raises:
            InvalidSessionTransition: If the session is not IDLE.
            DeviceUnavailable: If the camera or engine cannot be acquired.
                The session is back in IDLE with nothing held.
        """
        with self._lifecycle_lock:
            if self._state is not SessionState.IDLE:
                raise InvalidSessionTransition(f"Cannot start from {self._state.name}")
            self._set_state(SessionState.STARTING)
            self._acquire(selector)
            logger.info(f"Camera session active | device={selector!r} | {self._engine_options}")
            return self._state

    def stop(self) -> SessionState:
        """Release camera and engine. Idempotent and never raises."""
        with self._lifecycle_lock:
            if self._state is SessionState.IDLE and self._capture is None and self._engine is None:
                return self._state
            self._set_state(SessionState.STOPPING)
            self._release_handles()
            self._set_state(SessionState.IDLE)
            logger.info(f"Camera session stopped | device={self._selector!r} | dropped_frames={self._dropped_frames}")
            return self._state

    def switch_device(self, selector: DeviceSelector) -> SessionState:
        """Release the current device and acquire ``selector`` in its place.

        Goes ACTIVE → STOPPING → STARTING → ACTIVE without passing through
        IDLE. A failed acquisition leaves the session IDLE.

        Raises:
            InvalidSessionTransition: If the session is not ACTIVE.
            DeviceUnavailable: If the new device cannot be acquired.
        """
        with self._lifecycle_lock:
            if self._state is not SessionState.ACTIVE:
                raise InvalidSessionTransition(f"Cannot switch device from {self._state.name}")
            logger.info(f"Switching camera {self._selector!r} → {selector!r}")
            self._set_state(SessionState.STOPPING)
            self._release_handles()
            self._set_state(SessionState.STARTING)
            self._acquire(selector)
            logger.info(f"Camera session active | device={selector!r}")
            return self._state

    # ── Internals ────────────────────────────────────────────

    def _acquire(self, selector: DeviceSelector) -> None:
        """STARTING → ACTIVE, or → IDLE with nothing held on failure."""
        self._selector = selector
        try:
            self._engine = self._engine_factory()
            self._engine.configure(self._engine_options)
            self._extractor = FrameExtractor(
                self._engine,
                self._preprocessor,
                draw_overlay=self._draw_overlay,
            )
            self._capture = self._capture_factory(selector)
            self._capture.start(self._deliver)
        except Exception as e:
            logger.error(f"Failed to start camera {selector!r}: {e}")
            self._set_state(SessionState.STOPPING)
            self._release_handles()
            self._set_state(SessionState.IDLE)
            raise DeviceUnavailable(selector, str(e)) from e
        self._set_state(SessionState.ACTIVE)

    def _deliver(self, frame: VideoFrame) -> None:
        """Capture callback: one frame → at most one tick."""
        if self._state is not SessionState.ACTIVE or self._frame_handler is None:
            return
        if not self._tick_lock.acquire(blocking=False):
            self._dropped_frames += 1
            return
        try:
            self._frame_handler(frame)
        finally:
            self._tick_lock.release()

    def _release_handles(self) -> None:
        capture, self._capture = self._capture, None
        engine, self._engine = self._engine, None
        self._extractor = None

        if capture is not None:
            try:
                capture.stop()
            except Exception as e:
                logger.warning(f"Ignoring error while releasing camera: {e}")
        if engine is not None:
            try:
                engine.close()
            except Exception as e:
                logger.warning(f"Ignoring error while closing extraction engine: {e}")

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            logger.debug(f"Session {self._state.name} → {state.name}")
            self._state = state
            if self._state_listener is not None:
                self._state_listener(state)

    def __enter__(self) -> CameraSession:
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()
