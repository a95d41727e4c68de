"""Inference module — payloads, cooldown gate, remote client and pipeline."""

from core.inference.client import InferenceClient
from core.inference.payload import PayloadBuilder
from core.inference.pipeline import PipelineConfig, PipelineController, TickOutcome
from core.inference.throttle import Admission, RequestThrottler

__all__ = [
    "Admission",
    "InferenceClient",
    "PayloadBuilder",
    "PipelineConfig",
    "PipelineController",
    "RequestThrottler",
    "TickOutcome",
]
