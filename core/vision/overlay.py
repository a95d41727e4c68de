"""Landmark and prediction overlays drawn onto BGR frames."""

from __future__ import annotations

from collections.abc import Sequence

import cv2
import numpy as np

from core.types import HAND_CONNECTIONS, ExtractionResult, HandRecord, PredictionState

CONNECTOR_COLOR = (0, 255, 0)  # BGR green
LANDMARK_COLOR = (0, 0, 255)  # BGR red
TEXT_COLOR = (0, 0, 255)


def draw_hands(
    image: np.ndarray,
    hands: Sequence[HandRecord],
    connector_thickness: int = 5,
    landmark_radius: int = 4,
) -> np.ndarray:
    """Return a copy of ``image`` with hand connectors and landmark dots drawn."""
    annotated = image.copy()
    h, w = annotated.shape[:2]

    for hand in hands:
        points = [(int(x * w), int(y * h)) for x, y, _ in hand.landmarks]
        for start, end in HAND_CONNECTIONS:
            cv2.line(annotated, points[start], points[end], CONNECTOR_COLOR, connector_thickness)
        for point in points:
            cv2.circle(annotated, point, landmark_radius, LANDMARK_COLOR, -1)

    return annotated


def draw_prediction(image: np.ndarray, prediction: PredictionState) -> np.ndarray:
    """Draw the prediction caption centred along the bottom edge, in place."""
    text = prediction.display_text
    font = cv2.FONT_HERSHEY_SIMPLEX
    (text_w, _), _ = cv2.getTextSize(text, font, 0.9, 2)
    h, w = image.shape[:2]
    origin = (max((w - text_w) // 2, 0), h - 10)
    cv2.putText(image, text, origin, font, 0.9, TEXT_COLOR, 2, cv2.LINE_AA)
    return image


def compose_preview(
    result: ExtractionResult | None,
    prediction: PredictionState,
    mirror: bool = False,
    size: tuple[int, int] = (640, 480),
) -> np.ndarray:
    """Build the image shown to the user for the latest extraction result.

    With no result yet, a black ``size`` (width, height) placeholder is used.
    ``mirror`` flips the picture for a selfie view; the caption is drawn
    afterwards so it stays readable.
    """
    if result is None:
        width, height = size
        image = np.zeros((height, width, 3), dtype=np.uint8)
    elif result.annotated is not None:
        image = result.annotated.copy()
    else:
        image = result.frame.image.copy()

    if mirror:
        image = cv2.flip(image, 1)
    return draw_prediction(image, prediction)
