"""Error hierarchy for the capture → extraction → classification pipeline."""

from __future__ import annotations


class ManoLinguaError(Exception):
    """Base class for all pipeline errors."""


class DeviceUnavailable(ManoLinguaError):
    """The capture device (or the extraction engine) could not be acquired."""

    def __init__(self, selector: object, reason: str = "") -> None:
        self.selector = selector
        self.reason = reason
        message = f"Camera {selector!r} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class InvalidSessionTransition(ManoLinguaError):
    """A lifecycle call was made from a state that does not allow it."""


class ExtractionFailure(ManoLinguaError):
    """The extraction engine failed on a single frame. The session survives."""


class InferenceError(ManoLinguaError):
    """Base class for classification failures."""


class NetworkError(InferenceError):
    """The request never produced a usable HTTP response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class InvalidResponse(InferenceError):
    """The endpoint answered, but not with ``{signs: [...]}`` or ``{sign: ...}``."""
