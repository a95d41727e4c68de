"""Shared types, protocols, and constants for the ManoLingua core."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUM_HAND_LANDMARKS = 21
LANDMARK_DIMS = 3  # x, y, z
FLAT_LANDMARK_SIZE = NUM_HAND_LANDMARKS * LANDMARK_DIMS  # 63
SIGN_SEPARATOR = " / "
HAND_CONNECTIONS: list[tuple[int, int]] = [
    (0, 1), (1, 2), (2, 3), (3, 4),        # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),        # Index
    (0, 9), (9, 10), (10, 11), (11, 12),   # Middle
    (0, 13), (13, 14), (14, 15), (15, 16), # Ring
    (0, 17), (17, 18), (18, 19), (19, 20), # Pinky
    (5, 9), (9, 13), (13, 17),             # Palm
]

DeviceSelector = int | str


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PayloadMode(str, Enum):
    """What the pipeline sends to the classifier. Fixed per pipeline."""
    LANDMARKS = "landmarks"
    IMAGE = "image"


class SessionState(Enum):
    """Lifecycle of a camera session."""
    IDLE = auto()
    STARTING = auto()
    ACTIVE = auto()
    STOPPING = auto()


class PipelineState(Enum):
    """Lifecycle of the frame-to-inference pipeline."""
    IDLE = auto()
    READY = auto()
    DISPATCHING = auto()


# ---------------------------------------------------------------------------
# Core Data Structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class VideoFrame:
    """One captured image.

    Attributes:
        image: BGR image (H, W, 3), dtype uint8.
        timestamp: Capture time in seconds (monotonic clock).
    """
    image: NDArray[np.uint8]
    timestamp: float = 0.0

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])


@dataclass(frozen=True, slots=True)
class HandRecord:
    """One detected hand: 21 normalized (x, y, z) points in detection order.

    Attributes:
        landmarks: (21, 3) array of [x, y, z]. z may fall outside [0, 1].
    """
    landmarks: NDArray[np.float32]  # shape (21, 3)

    def __post_init__(self) -> None:
        if self.landmarks.shape != (NUM_HAND_LANDMARKS, LANDMARK_DIMS):
            raise ValueError(
                f"Expected shape ({NUM_HAND_LANDMARKS}, {LANDMARK_DIMS}), "
                f"got {self.landmarks.shape}"
            )

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> HandRecord:
        """Build a record from any (x, y, z) point sequence."""
        return cls(landmarks=np.asarray(points, dtype=np.float32).reshape(-1, LANDMARK_DIMS))

    def flatten(self) -> list[float]:
        """Return [x1, y1, z1, ..., x21, y21, z21] as plain floats."""
        return [float(v) for v in self.landmarks.reshape(-1)]


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Hands found in one frame, plus the frame they came from.

    Attributes:
        frame: Source frame (resized as the extractor saw it).
        hands: Detected hands, in the order the engine reported them.
        annotated: Copy of the frame with the landmark overlay drawn, if enabled.
    """
    frame: VideoFrame
    hands: tuple[HandRecord, ...] = ()
    annotated: NDArray[np.uint8] | None = None

    @property
    def has_hands(self) -> bool:
        return len(self.hands) > 0


@dataclass(frozen=True, slots=True)
class ClassificationPayload:
    """Body sent to the remote classifier.

    Exactly one of ``landmarks`` / ``image`` is set, matching ``mode``.
    """
    mode: PayloadMode
    landmarks: tuple[tuple[float, ...], ...] | None = None
    image: str | None = None

    def __post_init__(self) -> None:
        if self.mode is PayloadMode.LANDMARKS:
            if self.landmarks is None or self.image is not None:
                raise ValueError("Landmark payload requires landmarks and no image")
            for vector in self.landmarks:
                if len(vector) != FLAT_LANDMARK_SIZE:
                    raise ValueError(
                        f"Landmark vector must have {FLAT_LANDMARK_SIZE} values, got {len(vector)}"
                    )
        elif self.image is None or self.landmarks is not None:
            raise ValueError("Image payload requires an image and no landmarks")

    def to_json(self) -> dict[str, Any]:
        if self.mode is PayloadMode.LANDMARKS:
            return {"landmarks": [list(v) for v in self.landmarks or ()]}
        return {"image": self.image}


@dataclass(frozen=True, slots=True)
class PredictionState:
    """Last successfully predicted sign. Never cleared by failures."""
    current_sign: str | None = None
    last_updated: float | None = None

    @property
    def display_text(self) -> str:
        if self.current_sign is None:
            return "Esperando predicción..."
        return f"Letra: {self.current_sign}"


@dataclass(slots=True)
class ThrottleState:
    """Dispatch gate state. ``last_dispatch_time`` is None until the first dispatch."""
    last_dispatch_time: float | None = None
    in_flight: bool = False


@dataclass(frozen=True, slots=True)
class EngineOptions:
    """Options handed to the extraction engine's ``configure``."""
    max_hands: int = 1
    model_complexity: int = 1
    min_detection_confidence: float = 0.7
    min_tracking_confidence: float = 0.7

    def __post_init__(self) -> None:
        if self.max_hands not in (1, 2):
            raise ValueError(f"max_hands must be 1 or 2, got {self.max_hands}")


# ---------------------------------------------------------------------------
# Protocols (Interfaces)
# ---------------------------------------------------------------------------

FrameCallback = Callable[[VideoFrame], None]


class CaptureSource(Protocol):
    """Protocol for camera backends delivering frames through a callback."""

    def start(self, on_frame: FrameCallback) -> None:
        """Open the device and begin delivering frames. Raises on failure."""
        ...

    def stop(self) -> None:
        """Stop delivery and release the device. Safe to call twice."""
        ...


class ExtractionEngine(Protocol):
    """Protocol for hand landmark engines. Not reentrant."""

    def configure(self, options: EngineOptions) -> None:
        ...

    def process(self, image: NDArray[np.uint8]) -> list[NDArray[np.float32]]:
        """Return one (21, 3) array per detected hand for an RGB image."""
        ...

    def close(self) -> None:
        ...


@dataclass(slots=True)
class PipelineStats:
    """Counters for what the pipeline did with its frames."""
    frames: int = 0
    extraction_failures: int = 0
    no_hands: int = 0
    rejected: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    stale_discarded: int = 0
    last_latency_ms: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "frames": self.frames,
            "extraction_failures": self.extraction_failures,
            "no_hands": self.no_hands,
            "rejected": self.rejected,
            "dispatched": self.dispatched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "stale_discarded": self.stale_discarded,
            "last_latency_ms": round(self.last_latency_ms, 2),
        }
