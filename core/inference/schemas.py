# ============================================================
#  ManoLingua — Pydantic wire schemas for POST /predict
# ============================================================
"""Request and response bodies exchanged with the classification endpoint."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.types import FLAT_LANDMARK_SIZE, SIGN_SEPARATOR

# ── Requests ─────────────────────────────────────────────────


class LandmarksRequest(BaseModel):
    landmarks: list[list[float]] = Field(..., min_length=1, description="One 63-float vector per hand")

    @model_validator(mode="after")
    def _check_vector_size(self) -> LandmarksRequest:
        for vector in self.landmarks:
            if len(vector) != FLAT_LANDMARK_SIZE:
                raise ValueError(f"each landmark vector needs {FLAT_LANDMARK_SIZE} values, got {len(vector)}")
        return self


class ImageRequest(BaseModel):
    image: str = Field(..., pattern=r"^data:image/[a-z]+;base64,", description="base64 data URL")


# ── Response ─────────────────────────────────────────────────

SignLabel = Annotated[str, Field(min_length=1)]


class PredictionResponse(BaseModel):
    """Accepts ``{"signs": [...]}`` or ``{"sign": "..."}``; ``signs`` wins if both are present."""

    model_config = ConfigDict(extra="ignore")

    signs: list[SignLabel] | None = None
    sign: SignLabel | None = None

    @model_validator(mode="after")
    def _require_prediction(self) -> PredictionResponse:
        if self.signs is not None:
            if not self.signs:
                raise ValueError("'signs' is empty")
        elif self.sign is None:
            raise ValueError("response has neither 'signs' nor 'sign'")
        return self

    def joined(self) -> str:
        """Labels in server order, joined for display."""
        if self.signs is not None:
            return SIGN_SEPARATOR.join(self.signs)
        return self.sign or ""
