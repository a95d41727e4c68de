"""Vision module — capture, frame preparation, extraction and overlays.

``core.vision.detector`` (MediaPipe) is imported on demand, not here.
"""

from core.vision.capture import OpenCVCaptureSource
from core.vision.extractor import FrameExtractor
from core.vision.preprocessor import FramePreprocessor

__all__ = ["OpenCVCaptureSource", "FrameExtractor", "FramePreprocessor"]
