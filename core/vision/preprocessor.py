"""Frame preparation ahead of landmark extraction.

Validates captured frames and bounds their size. Frames are never flipped:
the engine sees exactly what the camera delivered.
"""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np

from core.types import VideoFrame


@dataclass(frozen=True, slots=True)
class PreprocessConfig:
    """Configuration for frame preparation.

    Attributes:
        max_dimension: Maximum frame side; downscale if exceeded (0 = never).
    """
    max_dimension: int = 1280


class FramePreprocessor:
    """Validates and downscales captured frames.

    Stateless and thread-safe.

    Usage:
        >>> preprocessor = FramePreprocessor(PreprocessConfig(max_dimension=960))
        >>> prepared = preprocessor.prepare(frame)
        >>> rgb = preprocessor.to_rgb(prepared)
    """

    def __init__(self, config: PreprocessConfig | None = None) -> None:
        self._config = config or PreprocessConfig()

    @property
    def config(self) -> PreprocessConfig:
        return self._config

    def prepare(self, frame: VideoFrame) -> VideoFrame:
        """Return a new frame ready for the extraction engine.

        Raises:
            ValueError: If the frame image is not a non-empty BGR array.
        """
        self._validate(frame.image)
        image = self._resize(frame.image)
        if image is frame.image:
            return frame
        return VideoFrame(image=image, timestamp=frame.timestamp)

    @staticmethod
    def to_rgb(frame: VideoFrame) -> np.ndarray:
        """MediaPipe expects RGB; captured frames are BGR."""
        return cv2.cvtColor(frame.image, cv2.COLOR_BGR2RGB)

    def _validate(self, image: np.ndarray) -> None:
        if image is None:
            raise ValueError("Frame is None")
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected (H, W, 3) BGR frame, got shape {image.shape}")
        if image.size == 0:
            raise ValueError("Frame is empty")

    def _resize(self, image: np.ndarray) -> np.ndarray:
        max_dim = self._config.max_dimension
        h, w = image.shape[:2]
        if max_dim <= 0 or max(h, w) <= max_dim:
            return image
        scale = max_dim / max(h, w)
        return cv2.resize(image, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_LINEAR)
