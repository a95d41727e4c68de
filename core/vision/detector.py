"""MediaPipe-based hand landmark engine.

Thin wrapper over MediaPipe Hands exposing the configure / process / close
surface the extractor relies on. Landmark computation itself is MediaPipe's.
"""

from __future__ import annotations

import time
from typing import Any

import mediapipe as mp
import numpy as np
from loguru import logger

from core.types import LANDMARK_DIMS, NUM_HAND_LANDMARKS, EngineOptions


class MediaPipeHandEngine:
    """Hand landmark engine backed by MediaPipe Hands.

    The underlying graph cannot be reconfigured in place, so ``configure``
    rebuilds it. Not reentrant: callers must serialize ``process``.

    Usage:
        >>> engine = MediaPipeHandEngine()
        >>> engine.configure(EngineOptions(max_hands=2))
        >>> hands = engine.process(rgb_frame)  # list of (21, 3) arrays
        >>> engine.close()
    """

    def __init__(self, static_image_mode: bool = False) -> None:
        """Create an unconfigured engine.

        Args:
            static_image_mode: If True, treats every frame as independent (slower but no tracking).
        """
        self._static_image_mode = static_image_mode
        self._mp_hands = mp.solutions.hands
        self._hands: Any = None
        self._options: EngineOptions | None = None
        self._last_inference_ms: float = 0.0

    @property
    def options(self) -> EngineOptions | None:
        return self._options

    @property
    def last_inference_ms(self) -> float:
        """Return last inference time in milliseconds."""
        return self._last_inference_ms

    def configure(self, options: EngineOptions) -> None:
        """(Re)build the MediaPipe graph with the given options."""
        if self._hands is not None:
            self._hands.close()
        self._hands = self._mp_hands.Hands(
            static_image_mode=self._static_image_mode,
            max_num_hands=options.max_hands,
            model_complexity=options.model_complexity,
            min_detection_confidence=options.min_detection_confidence,
            min_tracking_confidence=options.min_tracking_confidence,
        )
        self._options = options
        logger.debug(f"MediaPipe Hands configured: {options}")

    def process(self, image: np.ndarray) -> list[np.ndarray]:
        """Detect hands in an RGB frame.

        Args:
            image: RGB image (H, W, 3), dtype uint8.

        Returns:
            One (21, 3) float32 array per detected hand, in MediaPipe's order.

        Raises:
            RuntimeError: If the engine is not configured or already closed.
        """
        if self._hands is None:
            raise RuntimeError("Engine not configured. Call configure() first.")

        image.flags.writeable = False
        t_start = time.perf_counter()
        results = self._hands.process(image)
        self._last_inference_ms = (time.perf_counter() - t_start) * 1000.0

        if not results.multi_hand_landmarks:
            return []

        hands: list[np.ndarray] = []
        for hand_lms in results.multi_hand_landmarks:
            landmarks = np.array(
                [[lm.x, lm.y, lm.z] for lm in hand_lms.landmark],
                dtype=np.float32,
            )
            assert landmarks.shape == (NUM_HAND_LANDMARKS, LANDMARK_DIMS)
            hands.append(landmarks)
        return hands

    def close(self) -> None:
        """Release MediaPipe resources. Safe to call more than once."""
        if self._hands is not None:
            self._hands.close()
            self._hands = None

    def __enter__(self) -> MediaPipeHandEngine:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
