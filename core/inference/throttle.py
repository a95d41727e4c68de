"""Cooldown gate for classification requests.

At most one request is in flight, and a new one is admitted only once the
cooldown has elapsed since the previous *dispatch* (not its completion).
Rejected frames are dropped, never queued: the freshest frame always wins.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum, auto
from threading import Lock

from loguru import logger

from core.types import ThrottleState


class Admission(Enum):
    ADMITTED = auto()
    REJECTED = auto()


class RequestThrottler:
    """Single-slot, time-based admission gate.

    Usage:
        >>> throttler = RequestThrottler(cooldown_ms=1000)
        >>> if throttler.try_admit() is Admission.ADMITTED:
        ...     try:
        ...         send()
        ...     finally:
        ...         throttler.release()
    """

    def __init__(
        self,
        cooldown_ms: float = 1000.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the gate.

        Args:
            cooldown_ms: Minimum time between two admitted requests.
            clock: Monotonic clock in seconds (injectable for tests).
        """
        if cooldown_ms < 0:
            raise ValueError(f"cooldown_ms must be >= 0, got {cooldown_ms}")
        self._cooldown_s = cooldown_ms / 1000.0
        self._clock = clock
        self._state = ThrottleState()
        self._lock = Lock()

    @property
    def cooldown_ms(self) -> float:
        return self._cooldown_s * 1000.0

    @property
    def state(self) -> ThrottleState:
        """Snapshot of the current gate state."""
        with self._lock:
            return ThrottleState(
                last_dispatch_time=self._state.last_dispatch_time,
                in_flight=self._state.in_flight,
            )

    @property
    def in_flight(self) -> bool:
        return self._state.in_flight

    def try_admit(self) -> Admission:
        """Admit a request iff none is in flight and the cooldown has elapsed."""
        with self._lock:
            now = self._clock()
            if self._state.in_flight:
                return Admission.REJECTED
            last = self._state.last_dispatch_time
            if last is not None and now - last < self._cooldown_s:
                return Admission.REJECTED
            self._state.in_flight = True
            self._state.last_dispatch_time = now
            return Admission.ADMITTED

    def release(self) -> None:
        """Mark the admitted request finished. Keeps the dispatch timestamp."""
        with self._lock:
            if not self._state.in_flight:
                logger.debug("release() called with no request in flight")
            self._state.in_flight = False

    def reset(self) -> None:
        """Forget all history: the next ``try_admit`` is admitted."""
        with self._lock:
            self._state = ThrottleState()
