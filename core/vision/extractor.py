"""Frame → hand records adapter around an extraction engine."""

from __future__ import annotations

from threading import Lock

import numpy as np
from loguru import logger

from core.errors import ExtractionFailure
from core.types import (
    LANDMARK_DIMS,
    NUM_HAND_LANDMARKS,
    ExtractionEngine,
    ExtractionResult,
    HandRecord,
    VideoFrame,
)
from core.vision.overlay import draw_hands
from core.vision.preprocessor import FramePreprocessor


class FrameExtractor:
    """Converts captured frames into :class:`ExtractionResult` objects.

    The engine is not reentrant, so calls are serialized with a lock; a
    second caller arriving mid-extraction waits rather than overlapping.

    Usage:
        >>> extractor = FrameExtractor(engine, FramePreprocessor())
        >>> result = extractor.extract(frame)
        >>> result.hands  # zero hands is a normal result
    """

    def __init__(
        self,
        engine: ExtractionEngine,
        preprocessor: FramePreprocessor | None = None,
        draw_overlay: bool = True,
    ) -> None:
        self._engine = engine
        self._preprocessor = preprocessor or FramePreprocessor()
        self._draw_overlay = draw_overlay
        self._lock = Lock()

    @property
    def engine(self) -> ExtractionEngine:
        return self._engine

    def extract(self, frame: VideoFrame) -> ExtractionResult:
        """Run the engine on one frame.

        Raises:
            ExtractionFailure: If preprocessing or the engine fails, or the
                engine reports a hand without exactly 21 (x, y, z) points.
        """
        try:
            prepared = self._preprocessor.prepare(frame)
            rgb = self._preprocessor.to_rgb(prepared)
            with self._lock:
                raw_hands = self._engine.process(rgb)
        except Exception as e:
            raise ExtractionFailure(f"Extraction engine failed: {e}") from e

        hands = tuple(self._to_record(raw) for raw in raw_hands)
        annotated = draw_hands(prepared.image, hands) if self._draw_overlay else None
        if hands:
            logger.trace(f"Extracted {len(hands)} hand(s) from {prepared.width}x{prepared.height} frame")
        return ExtractionResult(frame=prepared, hands=hands, annotated=annotated)

    @staticmethod
    def _to_record(raw: np.ndarray) -> HandRecord:
        points = np.asarray(raw, dtype=np.float32)
        if points.shape != (NUM_HAND_LANDMARKS, LANDMARK_DIMS):
            raise ExtractionFailure(
                f"Engine returned hand with shape {points.shape}, "
                f"expected ({NUM_HAND_LANDMARKS}, {LANDMARK_DIMS})"
            )
        return HandRecord(landmarks=points)
