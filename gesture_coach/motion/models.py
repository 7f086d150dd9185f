"""Value types shared by capture, reference decoding, and scoring."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from gesture_coach.motion.config import TARGET_POINT_COUNTS

Point = Tuple[float, float, float]

__all__ = ["Point", "Handedness", "LandmarkFrame", "Clip", "ScoreResult", "CameraFrame"]


class Handedness(str, Enum):
    LEFT = "Left"
    RIGHT = "Right"
    UNKNOWN = "Unknown"

    @classmethod
    def from_label(cls, raw: Any) -> "Handedness":
        """Map a detector label to a handedness; anything unexpected is Unknown."""
        if isinstance(raw, Handedness):
            return raw
        if raw == "Left":
            return cls.LEFT
        if raw == "Right":
            return cls.RIGHT
        return cls.UNKNOWN

    @property
    def is_known(self) -> bool:
        return self is not Handedness.UNKNOWN


def _coerce_point(raw: Any) -> Point:
    if isinstance(raw, (tuple, list)):
        x = raw[0] if len(raw) > 0 else 0.0
        y = raw[1] if len(raw) > 1 else 0.0
        z = raw[2] if len(raw) > 2 else 0.0
    elif isinstance(raw, dict):
        x, y, z = raw.get("x", 0.0), raw.get("y", 0.0), raw.get("z", 0.0)
    else:
        x, y, z = getattr(raw, "x", 0.0), getattr(raw, "y", 0.0), getattr(raw, "z", 0.0)
    return (float(x or 0.0), float(y or 0.0), float(z or 0.0))


@dataclass(frozen=True)
class LandmarkFrame:
    """Landmarks for one detected hand at one instant.

    ``points`` holds ``(x, y, z)`` triples in detector order; ``confidence`` is
    the handedness score reported by the detector.
    """

    points: Tuple[Point, ...]
    handedness: Handedness = Handedness.UNKNOWN
    confidence: float = 0.0
    timestamp_ms: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(_coerce_point(p) for p in self.points))
        object.__setattr__(self, "handedness", Handedness.from_label(self.handedness))
        confidence = float(self.confidence)
        if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1]; received {self.confidence!r}.")
        object.__setattr__(self, "confidence", confidence)
        timestamp = float(self.timestamp_ms)
        if not math.isfinite(timestamp):
            raise ValueError(f"timestamp_ms must be finite; received {self.timestamp_ms!r}.")
        object.__setattr__(self, "timestamp_ms", timestamp)


@dataclass(frozen=True)
class Clip:
    """An ordered, immutable sequence of landmark frames plus timing metadata."""

    frames: Tuple[LandmarkFrame, ...] = ()
    fps: float = 0.0
    duration_ms: float = 0.0
    target: str = "hands"

    def __post_init__(self) -> None:
        frames = tuple(self.frames)
        object.__setattr__(self, "frames", frames)
        previous: Optional[float] = None
        for frame in frames:
            if previous is not None and frame.timestamp_ms < previous:
                raise ValueError(
                    f"Clip frames must have non-decreasing timestamps ({frame.timestamp_ms} after {previous})."
                )
            previous = frame.timestamp_ms

        expected = TARGET_POINT_COUNTS.get(self.target)
        if expected is not None:
            for frame in frames:
                # Frames without landmarks are allowed; partial hands are not.
                if frame.points and len(frame.points) != expected:
                    raise ValueError(
                        f"'{self.target}' frames need {expected} points; received {len(frame.points)}."
                    )

        duration = float(self.duration_ms)
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"duration_ms must be a non-negative number; received {self.duration_ms!r}.")
        object.__setattr__(self, "duration_ms", duration)
        object.__setattr__(self, "fps", float(self.fps))

    def __len__(self) -> int:
        return len(self.frames)

    @property
    def is_empty(self) -> bool:
        return not self.frames

    @property
    def timestamps(self) -> Tuple[float, ...]:
        return tuple(frame.timestamp_ms for frame in self.frames)

    def with_frames(self, frames: Iterable[LandmarkFrame]) -> "Clip":
        """Return a copy carrying the same metadata and different frames."""
        return replace(self, frames=tuple(frames))


@dataclass(frozen=True)
class ScoreResult:
    passed: bool
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> Optional[str]:
        value = self.metadata.get("reason")
        return str(value) if value is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {"pass": bool(self.passed), "score": float(self.score), "metadata": dict(self.metadata)}


@dataclass(frozen=True)
class CameraFrame:
    """A raw frame from the live camera feed."""

    image: Any
    timestamp_ms: Optional[float]

