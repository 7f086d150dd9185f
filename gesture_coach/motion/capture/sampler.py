"""Rate limiting for live camera frames."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Callable, Optional

from gesture_coach.motion.config import MOTION_LOGGER as logger


def _frame_timestamp(frame: Any) -> Optional[float]:
    ts = getattr(frame, "timestamp_ms", None)
    if isinstance(ts, bool) or not isinstance(ts, Real):
        return None
    ts = float(ts)
    return ts if math.isfinite(ts) else None


class FrameSampler:
    """Admit at most one frame per ``1000 / fps`` milliseconds.

    Only the last admitted timestamp is kept. Frames without a usable
    timestamp are dropped silently.
    """

    def __init__(self, fps: float, on_admit: Optional[Callable[[Any], None]] = None) -> None:
        fps = float(fps)
        if not math.isfinite(fps) or fps <= 0:
            raise ValueError(f"fps must be a positive number; received {fps!r}.")
        self.fps = fps
        self.interval_ms = 1000.0 / fps
        self.on_admit = on_admit
        self._last_admitted: Optional[float] = None

    @property
    def last_admitted_ms(self) -> Optional[float]:
        return self._last_admitted

    def reset(self) -> None:
        self._last_admitted = None

    def push(self, frame: Any) -> bool:
        """Return True when ``frame`` was admitted (and forwarded to ``on_admit``)."""
        ts = _frame_timestamp(frame)
        if ts is None:
            logger.debug("Dropping frame without a numeric timestamp")
            return False
        if self._last_admitted is not None and ts - self._last_admitted < self.interval_ms:
            return False
        self._last_admitted = ts
        if self.on_admit is not None:
            self.on_admit(frame)
        return True


__all__ = ["FrameSampler"]
