"""OpenCV camera capture delivering frames to a callback on a reader thread."""

from __future__ import annotations

import threading
import time
from typing import Any

import cv2
from loguru import logger

from core.types import DeviceSelector, FrameCallback, VideoFrame

FACING_MODES = ("user", "environment")


def resolve_device(
    selector: DeviceSelector,
    front_index: int = 0,
    rear_index: int = 1,
) -> int:
    """Map a device selector to an OpenCV camera index.

    Accepts an index, a numeric string, or a facing name
    (``"user"`` = front camera, ``"environment"`` = rear camera).

    Raises:
        ValueError: If the selector is none of the above.
    """
    if isinstance(selector, bool):
        raise ValueError(f"Invalid camera selector: {selector!r}")
    if isinstance(selector, int):
        return selector
    name = selector.strip().lower()
    if name == "user":
        return front_index
    if name == "environment":
        return rear_index
    if name.isdigit():
        return int(name)
    raise ValueError(f"Invalid camera selector: {selector!r}")


class OpenCVCaptureSource:
    """Camera backend built on ``cv2.VideoCapture``.

    Frames are read on a daemon thread and handed to the callback one at a
    time, so callbacks never overlap. A failed read ends delivery.

    Usage:
        >>> source = OpenCVCaptureSource(0, width=640, height=480)
        >>> source.start(on_frame)
        >>> source.stop()
    """

    def __init__(
        self,
        index: int,
        width: int = 640,
        height: int = 480,
        fps: int = 30,
        max_read_failures: int = 30,
    ) -> None:
        self._index = index
        self._width = width
        self._height = height
        self._fps = fps
        self._max_read_failures = max_read_failures
        self._cap: Any = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def index(self) -> int:
        return self._index

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def start(self, on_frame: FrameCallback) -> None:
        """Open the device and start the reader thread.

        Raises:
            RuntimeError: If the device cannot be opened.
        """
        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(f"Cannot open camera {self._index}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        cap.set(cv2.CAP_PROP_FPS, self._fps)
        # Keep only the newest frame in the driver buffer
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)

        self._cap = cap
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._read_loop,
            args=(on_frame,),
            name=f"capture-{self._index}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Camera {self._index} opened | "
            f"{int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x{int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))}"
        )

    def stop(self) -> None:
        """Stop the reader thread and release the device."""
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            logger.info(f"Camera {self._index} released")

    def _read_loop(self, on_frame: FrameCallback) -> None:
        failures = 0
        while not self._stop_event.is_set():
            cap = self._cap
            if cap is None:
                break
            ok, image = cap.read()
            if not ok or image is None:
                failures += 1
                if failures >= self._max_read_failures:
                    logger.error(f"Camera {self._index}: {failures} consecutive read failures, giving up")
                    break
                time.sleep(0.01)
                continue
            failures = 0
            try:
                on_frame(VideoFrame(image=image, timestamp=time.monotonic()))
            except Exception:
                logger.exception("Frame callback raised; continuing")
