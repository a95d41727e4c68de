"""Tests for app.config, app.factory and the CLI argument plumbing."""

from __future__ import annotations

import argparse
import threading
from types import SimpleNamespace

import cv2
import numpy as np
import pytest
from pydantic import ValidationError

from app.config import Settings
from app.factory import build_controller, make_capture, mirror_preview, pipeline_config
from core.types import PayloadMode, PipelineState, PredictionState, VideoFrame
from manolingua import _preview_loop, _settings_from_args, _toggle_facing
from tests.conftest import Devices, Engines, FakeEngine, ManualExecutor


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.payload_mode is PayloadMode.LANDMARKS
        assert s.max_hands == 1
        assert s.cooldown_ms == 1000
        assert s.camera == "user"
        assert (s.camera_width, s.camera_height) == (640, 480)

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAYLOAD_MODE", "image")
        monkeypatch.setenv("MAX_HANDS", "2")
        monkeypatch.setenv("PREDICT_URL", "https://signs.example/predict")
        s = Settings(_env_file=None)
        assert s.payload_mode is PayloadMode.IMAGE
        assert s.max_hands == 2
        assert s.predict_url == "https://signs.example/predict"

    def test_log_level_uppercased(self) -> None:
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_hands": 3},
            {"max_hands": 0},
            {"cooldown_ms": -1},
            {"predict_url": "ftp://host/predict"},
            {"payload_mode": "video"},
            {"image_format": "gif"},
            {"model_complexity": 2},
        ],
    )
    def test_rejects_invalid(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)


class TestFactory:
    def test_pipeline_config_follows_settings(self) -> None:
        s = Settings(_env_file=None, payload_mode="image", max_hands=2, cooldown_ms=250, image_format="png")
        config = pipeline_config(s)
        assert config.mode is PayloadMode.IMAGE
        assert config.cooldown_ms == 250
        assert config.image_format == "png"
        assert config.engine_options.max_hands == 2

    def test_make_capture_resolves_facing(self) -> None:
        s = Settings(_env_file=None, front_camera_index=2, rear_camera_index=5, camera_fps=15)
        assert make_capture(s, "user").index == 2
        assert make_capture(s, "environment").index == 5
        assert make_capture(s, 7).index == 7

    def test_front_camera_preview_is_mirrored(self) -> None:
        s = Settings(_env_file=None)
        assert mirror_preview(s, "user")
        assert mirror_preview(s, 0)
        assert not mirror_preview(s, "environment")
        assert not mirror_preview(s, "side")

    def test_preview_mirroring_can_be_disabled(self) -> None:
        assert not mirror_preview(Settings(_env_file=None, mirror_preview=False), "user")

    def test_build_controller(self, engines: Engines) -> None:
        controller = build_controller(Settings(_env_file=None, payload_mode="image"), engine_factory=engines)
        try:
            assert controller.state is PipelineState.IDLE
            assert controller.mode is PayloadMode.IMAGE
        finally:
            controller.close()

    def test_front_camera_landmarks_are_not_mirrored(self, devices: Devices, executor: ManualExecutor) -> None:
        class MarkerEngine(FakeEngine):
            """Reports one hand at the normalized x of the brightest column."""

            def process(self, image: np.ndarray) -> list[np.ndarray]:
                column = int(np.argmax(image.max(axis=(0, 2))))
                return [np.tile(np.array([column / image.shape[1], 0.5, 0.0], dtype=np.float32), (21, 1))]

        controller = build_controller(
            Settings(_env_file=None, camera="user"),
            capture_factory=devices,
            engine_factory=MarkerEngine,
            executor=executor,
        )
        image = np.zeros((480, 640, 3), dtype=np.uint8)
        image[:, 10] = 255
        try:
            controller.start("user")
            devices.current.emit(VideoFrame(image))
            _future, _fn, args, _kwargs = executor.pending[0]
            payload = args[0]
            assert payload.landmarks[0][0] == pytest.approx(10 / 640)
        finally:
            controller.close()


class TestCliHelpers:
    def test_toggle_facing(self) -> None:
        assert _toggle_facing("user") == "environment"
        assert _toggle_facing("environment") == "user"
        assert _toggle_facing("2") == "2"

    def test_only_given_flags_override(self) -> None:
        args = argparse.Namespace(camera="environment", mode=None, max_hands=2, url=None, cooldown_ms=None)
        s = _settings_from_args(args)
        assert s.camera == "environment"
        assert s.max_hands == 2
        assert s.payload_mode is PayloadMode.LANDMARKS


class TestPreviewLoop:
    def test_window_shown_before_waiting_for_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        events: list[str] = []
        shown: list[np.ndarray] = []

        def imshow(name: str, image: np.ndarray) -> None:
            events.append("imshow")
            shown.append(image)

        def wait_key(delay: int) -> int:
            events.append("waitKey")
            return ord("q")

        monkeypatch.setattr(cv2, "imshow", imshow)
        monkeypatch.setattr(cv2, "waitKey", wait_key)
        monkeypatch.setattr(cv2, "destroyAllWindows", lambda: None)

        controller = SimpleNamespace(prediction=PredictionState())
        _preview_loop(controller, {}, threading.Lock(), "user", Settings(_env_file=None))

        assert events == ["imshow", "waitKey"]
        assert shown[0].shape == (480, 640, 3)
