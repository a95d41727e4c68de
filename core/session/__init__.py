"""Session module — camera and extraction engine lifecycle."""

from core.session.camera import CameraSession

__all__ = ["CameraSession"]
