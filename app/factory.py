"""Wires a PipelineController from Settings.

Keeps ``core/`` free of configuration concerns: everything environment
specific (device indices, URLs, MediaPipe) is decided here.
"""

from __future__ import annotations

from functools import partial
from typing import Any

from app.config import Settings
from core.inference.client import InferenceClient
from core.inference.pipeline import PipelineConfig, PipelineController
from core.types import DeviceSelector, ExtractionEngine
from core.vision.capture import OpenCVCaptureSource, resolve_device


def pipeline_config(settings: Settings) -> PipelineConfig:
    return PipelineConfig(
        mode=settings.payload_mode,
        max_hands=settings.max_hands,
        model_complexity=settings.model_complexity,
        min_detection_confidence=settings.min_detection_confidence,
        min_tracking_confidence=settings.min_tracking_confidence,
        cooldown_ms=settings.cooldown_ms,
        draw_overlay=settings.draw_overlay,
        image_format=settings.image_format,
        jpeg_quality=settings.jpeg_quality,
        max_dimension=settings.image_max_dimension,
    )


def make_capture(settings: Settings, selector: DeviceSelector) -> OpenCVCaptureSource:
    index = resolve_device(selector, settings.front_camera_index, settings.rear_camera_index)
    return OpenCVCaptureSource(
        index,
        width=settings.camera_width,
        height=settings.camera_height,
        fps=settings.camera_fps,
    )


def mirror_preview(settings: Settings, selector: DeviceSelector) -> bool:
    """Whether the preview window should show a selfie view for ``selector``.

    Only the displayed image is flipped; frames sent for classification never are.
    """
    if not settings.mirror_preview:
        return False
    try:
        index = resolve_device(selector, settings.front_camera_index, settings.rear_camera_index)
    except ValueError:
        return False
    return index == settings.front_camera_index


def make_engine() -> ExtractionEngine:
    from core.vision.detector import MediaPipeHandEngine

    return MediaPipeHandEngine()


def build_controller(settings: Settings, **kwargs: Any) -> PipelineController:
    """Build a ready-to-start controller for the real camera and endpoint.

    Extra keyword arguments are passed to :class:`PipelineController`
    (``on_prediction``, ``on_result``, ``executor``...). ``capture_factory``
    and ``engine_factory`` replace the OpenCV camera and MediaPipe engine.
    """
    client = InferenceClient(settings.predict_url, timeout_s=settings.request_timeout_s)
    return PipelineController.create(
        pipeline_config(settings),
        capture_factory=kwargs.pop("capture_factory", partial(make_capture, settings)),
        engine_factory=kwargs.pop("engine_factory", make_engine),
        client=client,
        **kwargs,
    )
