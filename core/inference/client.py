"""HTTP client for the remote sign classification endpoint.

Payload → ``POST /predict`` → predicted sign. One request per call, no
retries: the next admitted frame is the retry.
"""

from __future__ import annotations

import time
from typing import Any

import requests
from loguru import logger
from pydantic import ValidationError

from core.errors import InvalidResponse, NetworkError
from core.inference.schemas import ImageRequest, LandmarksRequest, PredictionResponse
from core.types import ClassificationPayload, PayloadMode


class InferenceClient:
    """Synchronous classification client built on ``requests``.

    Transport failures, timeouts and non-2xx statuses raise
    :class:`NetworkError`; a body that is not JSON or matches neither
    ``{"signs": [...]}`` nor ``{"sign": "..."}`` raises :class:`InvalidResponse`.

    Usage:
        >>> client = InferenceClient("http://127.0.0.1:5000/predict")
        >>> sign = client.classify(payload)  # "A / B"
        >>> client.close()
    """

    def __init__(
        self,
        url: str,
        timeout_s: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Full URL of the predict endpoint.
            timeout_s: Connect/read timeout per request, in seconds.
            session: Optional pre-configured session (connection pooling, tests).
        """
        self.url = url
        self.timeout_s = timeout_s
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        self._last_latency_ms: float = 0.0

    @property
    def last_latency_ms(self) -> float:
        return self._last_latency_ms

    def classify(self, payload: ClassificationPayload) -> str:
        """Send one payload and return the predicted sign text.

        Returns:
            The sign label, or several labels joined with ``" / "`` in the
            order the server returned them.

        Raises:
            NetworkError: The request failed to produce a 2xx response.
            InvalidResponse: The response body has an unexpected shape.
        """
        body = self._validate_request(payload)

        t_start = time.perf_counter()
        try:
            response = self._session.post(self.url, json=body, timeout=self.timeout_s)
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"Request to {self.url} timed out after {self.timeout_s}s") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request to {self.url} failed: {e}") from e
        finally:
            self._last_latency_ms = (time.perf_counter() - t_start) * 1000.0

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise NetworkError(
                f"Endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponse(f"Response is not JSON: {response.text[:200]!r}") from e

        try:
            parsed = PredictionResponse.model_validate(data)
        except ValidationError as e:
            raise InvalidResponse(f"Unexpected response shape: {data!r}") from e

        sign = parsed.joined()
        logger.debug(f"Prediction received: {sign!r} ({self._last_latency_ms:.0f} ms)")
        return sign

    @staticmethod
    def _validate_request(payload: ClassificationPayload) -> dict[str, Any]:
        body = payload.to_json()
        if payload.mode is PayloadMode.LANDMARKS:
            return LandmarksRequest.model_validate(body).model_dump()
        return ImageRequest.model_validate(body).model_dump()

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> InferenceClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
