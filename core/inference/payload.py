"""Extraction result → classification payload."""

from __future__ import annotations

import base64

import cv2
import numpy as np

from core.types import ClassificationPayload, ExtractionResult, PayloadMode

IMAGE_FORMATS = {"jpeg": (".jpg", "image/jpeg"), "png": (".png", "image/png")}


class PayloadBuilder:
    """Builds the wire payload for one frame, in a mode fixed at construction.

    Landmark mode sends one 63-float vector per hand, in the extractor's
    hand order. Image mode sends the frame (overlay included, when one was
    drawn) as a base64 data URL.

    Usage:
        >>> builder = PayloadBuilder(PayloadMode.LANDMARKS)
        >>> payload = builder.build(result)
        >>> if payload is None:
        ...     pass  # nothing to classify
    """

    def __init__(
        self,
        mode: PayloadMode = PayloadMode.LANDMARKS,
        image_format: str = "jpeg",
        jpeg_quality: int = 90,
    ) -> None:
        if image_format not in IMAGE_FORMATS:
            raise ValueError(f"Unsupported image format: {image_format}")
        self._mode = PayloadMode(mode)
        self._image_format = image_format
        self._jpeg_quality = jpeg_quality

    @property
    def mode(self) -> PayloadMode:
        return self._mode

    def build(self, result: ExtractionResult) -> ClassificationPayload | None:
        """Return the payload for ``result``, or None when no hand was found."""
        if not result.has_hands:
            return None

        if self._mode is PayloadMode.LANDMARKS:
            vectors = tuple(tuple(hand.flatten()) for hand in result.hands)
            return ClassificationPayload(mode=PayloadMode.LANDMARKS, landmarks=vectors)

        image = result.annotated if result.annotated is not None else result.frame.image
        return ClassificationPayload(mode=PayloadMode.IMAGE, image=self.encode_image(image))

    def encode_image(self, image: np.ndarray) -> str:
        """Encode a BGR image as a ``data:image/...;base64,`` URL.

        Raises:
            ValueError: If OpenCV cannot encode the image.
        """
        extension, mime = IMAGE_FORMATS[self._image_format]
        params = [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality] if self._image_format == "jpeg" else []
        ok, buffer = cv2.imencode(extension, image, params)
        if not ok:
            raise ValueError(f"Failed to encode frame as {self._image_format}")
        encoded = base64.b64encode(buffer.tobytes()).decode("ascii")
        return f"data:{mime};base64,{encoded}"
