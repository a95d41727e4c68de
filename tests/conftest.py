"""Shared test fixtures for ManoLingua."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import Any

import numpy as np
import pytest

from core.inference.payload import PayloadBuilder
from core.inference.pipeline import PipelineController
from core.inference.throttle import RequestThrottler
from core.session.camera import CameraSession
from core.types import (
    LANDMARK_DIMS,
    NUM_HAND_LANDMARKS,
    ClassificationPayload,
    EngineOptions,
    FrameCallback,
    PayloadMode,
    VideoFrame,
)


class FakeClock:
    """Monotonic clock in seconds, advanced by hand."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class ManualExecutor(Executor):
    """Holds submitted work until the test decides to run it."""

    def __init__(self) -> None:
        self.pending: list[tuple[Future, Callable[..., Any], tuple, dict]] = []

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_next(self) -> Future:
        future, fn, args, kwargs = self.pending.pop(0)
        if future.set_running_or_notify_cancel():
            try:
                future.set_result(fn(*args, **kwargs))
            except BaseException as e:  # noqa: BLE001
                future.set_exception(e)
        return future

    def run_all(self) -> None:
        while self.pending:
            self.run_next()


class FakeEngine:
    """Extraction engine returning scripted hands."""

    def __init__(self) -> None:
        self.options: EngineOptions | None = None
        self.hands: list[np.ndarray] = []
        self.error: Exception | None = None
        self.fail_configure = False
        self.calls = 0
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def configure(self, options: EngineOptions) -> None:
        if self.fail_configure:
            raise RuntimeError("model files missing")
        self.options = options

    def process(self, image: np.ndarray) -> list[np.ndarray]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.hands)

    def close(self) -> None:
        self.close_calls += 1


class FakeCapture:
    """Capture source whose frames are pushed by the test."""

    def __init__(self, selector: Any, fail: bool = False) -> None:
        self.selector = selector
        self.fail = fail
        self.callback: FrameCallback | None = None
        self.stop_calls = 0

    @property
    def running(self) -> bool:
        return self.callback is not None

    def start(self, on_frame: FrameCallback) -> None:
        if self.fail:
            raise RuntimeError(f"Cannot open camera {self.selector}")
        self.callback = on_frame

    def stop(self) -> None:
        self.stop_calls += 1
        self.callback = None

    def emit(self, frame: VideoFrame) -> None:
        if self.callback is not None:
            self.callback(frame)


class FakeClient:
    """Stands in for InferenceClient; each call pops the next scripted outcome."""

    def __init__(self) -> None:
        self.outcomes: list[str | Exception] = []
        self.payloads: list[ClassificationPayload] = []
        self.closed = False

    def classify(self, payload: ClassificationPayload) -> str:
        self.payloads.append(payload)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class Devices:
    """Capture factory that remembers every capture it built."""

    def __init__(self) -> None:
        self.built: list[FakeCapture] = []
        self.unavailable: set[Any] = set()

    def __call__(self, selector: Any) -> FakeCapture:
        capture = FakeCapture(selector, fail=selector in self.unavailable)
        self.built.append(capture)
        return capture

    @property
    def current(self) -> FakeCapture:
        return self.built[-1]


class Engines:
    """Engine factory sharing one script across rebuilt engines."""

    def __init__(self) -> None:
        self.built: list[FakeEngine] = []
        self.hands: list[np.ndarray] = []
        self.fail_configure = False

    def __call__(self) -> FakeEngine:
        engine = FakeEngine()
        engine.hands = self.hands
        engine.fail_configure = self.fail_configure
        self.built.append(engine)
        return engine

    @property
    def current(self) -> FakeEngine:
        return self.built[-1]


# ── Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def hand_points() -> np.ndarray:
    """Random (21, 3) landmarks for one hand."""
    rng = np.random.default_rng(42)
    return rng.random((NUM_HAND_LANDMARKS, LANDMARK_DIMS)).astype(np.float32)


@pytest.fixture
def two_hand_points() -> list[np.ndarray]:
    rng = np.random.default_rng(7)
    return [rng.random((NUM_HAND_LANDMARKS, LANDMARK_DIMS)).astype(np.float32) for _ in range(2)]


@pytest.fixture
def dummy_bgr_frame() -> np.ndarray:
    """Generate a dummy 480x640 BGR frame."""
    return np.random.default_rng(42).integers(0, 256, (480, 640, 3), dtype=np.uint8)


@pytest.fixture
def video_frame(dummy_bgr_frame: np.ndarray) -> VideoFrame:
    return VideoFrame(image=dummy_bgr_frame, timestamp=1.0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture
def devices() -> Devices:
    return Devices()


@pytest.fixture
def engines() -> Engines:
    return Engines()


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def make_controller(
    devices: Devices,
    engines: Engines,
    fake_client: FakeClient,
    executor: ManualExecutor,
    clock: FakeClock,
) -> Callable[..., PipelineController]:
    """Factory for a controller wired entirely to fakes."""

    def _make(mode: PayloadMode = PayloadMode.LANDMARKS, max_hands: int = 1, **kwargs: Any) -> PipelineController:
        session = CameraSession(
            devices,
            engines,
            engine_options=EngineOptions(max_hands=max_hands),
            draw_overlay=mode is PayloadMode.IMAGE,
        )
        return PipelineController(
            session,
            PayloadBuilder(mode),
            RequestThrottler(cooldown_ms=1000, clock=clock),
            fake_client,  # type: ignore[arg-type]
            executor=executor,
            clock=clock,
            **kwargs,
        )

    return _make
