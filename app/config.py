"""ManoLingua — Centralised Settings (Pydantic v2).

Single source of truth for all configuration.
Loads from .env, environment variables, or defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.types import PayloadMode


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    app_name: str = "ManoLingua"
    app_version: str = "0.1.0"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # ── Remote classifier ────────────────────────────────────
    predict_url: str = "http://127.0.0.1:5000/predict"
    request_timeout_s: float = Field(10.0, gt=0)

    # ── Pipeline ─────────────────────────────────────────────
    payload_mode: PayloadMode = PayloadMode.LANDMARKS
    max_hands: int = Field(1, ge=1, le=2)
    cooldown_ms: int = Field(1000, ge=0)
    draw_overlay: bool = True

    # ── Extraction engine ────────────────────────────────────
    model_complexity: int = Field(1, ge=0, le=1)
    min_detection_confidence: float = Field(0.7, ge=0.0, le=1.0)
    min_tracking_confidence: float = Field(0.7, ge=0.0, le=1.0)

    # ── Camera ───────────────────────────────────────────────
    camera: str = "user"
    camera_width: int = 640
    camera_height: int = 480
    camera_fps: int = 30
    front_camera_index: int = 0
    rear_camera_index: int = 1
    mirror_preview: bool = True  # selfie view for the front camera, display only

    # ── Image payload ────────────────────────────────────────
    image_format: Literal["jpeg", "png"] = "jpeg"
    jpeg_quality: int = Field(90, ge=1, le=100)
    image_max_dimension: int = Field(1280, ge=0)

    @field_validator("predict_url")
    @classmethod
    def _check_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"predict_url must be an http(s) URL, got {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def project_root(self) -> Path:
        return Path(__file__).resolve().parent.parent


settings = Settings()
