"""
Frame admission at the camera boundary.

Two independent policies decide whether a frame reaches inference:
- FrameThrottle skips frames by count and by minimum wall-clock interval.
- InFlightGuard allows a single frame in flight; frames arriving while it
  is held are dropped, never queued.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional


class InFlightGuard:
    """Single-slot, non-blocking guard around per-frame processing."""

    def __init__(self):
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def slot(self) -> Iterator[bool]:
        """Yield True if the slot was taken (and release it afterwards), else False."""
        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


class FrameThrottle:
    """
    Admit every Nth frame, and no two frames closer than min_interval_s.

    The first frame is always admitted.
    """

    def __init__(
        self,
        every_n_frames: int = 1,
        min_interval_s: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if every_n_frames < 1:
            raise ValueError("every_n_frames must be >= 1")
        if min_interval_s < 0:
            raise ValueError("min_interval_s must be >= 0")
        self.every_n_frames = every_n_frames
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._lock = threading.Lock()
        self._seen = 0
        self._last_admitted: Optional[float] = None

    @classmethod
    def from_config(cls, cfg) -> "FrameThrottle":
        """Adapter: Build from a models.config.ThrottleConfig."""
        return cls(
            every_n_frames=int(cfg.every_n_frames),
            min_interval_s=float(cfg.min_interval_ms) / 1000.0,
        )

    def admit(self) -> bool:
        with self._lock:
            self._seen += 1
            if (self._seen - 1) % self.every_n_frames != 0:
                return False

            now = self._clock()
            if self._last_admitted is not None and now - self._last_admitted < self.min_interval_s:
                return False

            self._last_admitted = now
            return True
