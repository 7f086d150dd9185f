"""Pass/fail scoring of a user's gesture against a reference clip.

Both clips are aligned to a common length, each aligned frame pair is reduced
to a mean landmark distance in hand-normalized space, and the average distance
is mapped linearly onto a 0-1 score:

    score = clamp(1 - avg_distance / MAX_NORM_DISTANCE, 0, 1)

Handedness tie-break policy:
- both labels known, different, and both confidences >= HANDEDNESS_CONFIDENCE:
  the pair scores MAX_NORM_DISTANCE without any geometric comparison (the wrong
  hand is being compared, not merely a different pose)
- both labels Unknown and ``allow_mirror`` set: the smaller of the plain and
  mirrored distances is kept
- any other combination (including one confident side against an Unknown one):
  plain geometric comparison
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from gesture_coach.motion.comparison.dtw import alignment_quality, dtw_alignment
from gesture_coach.motion.comparison.resampling import resample
from gesture_coach.motion.config import (
    HANDEDNESS_CONFIDENCE,
    MAX_NORM_DISTANCE,
    MIN_VALID_FRAMES,
    MOTION_LOGGER as logger,
    SUCCESS_THRESHOLD,
)
from gesture_coach.motion.metrics.normalization import mean_point_distance, mirror, normalize
from gesture_coach.motion.models import Clip, LandmarkFrame, ScoreResult

FALLBACK_MIN_VALID_FRAMES = 6
ALIGNMENT_MODES = ("nearest", "dtw")

REASON_NO_FRAMES = "no_frames"
REASON_INSUFFICIENT_FRAMES = "insufficient_frames"


def _coerce_threshold(value: Any) -> float:
    if isinstance(value, bool):
        return SUCCESS_THRESHOLD
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        return SUCCESS_THRESHOLD
    return threshold if math.isfinite(threshold) else SUCCESS_THRESHOLD


@dataclass(frozen=True)
class ScoreOptions:
    """Caller-tunable scoring knobs.

    ``max_frames`` caps the aligned length (None/0 means the clips' overlap);
    a non-positive ``min_valid_frames`` falls back to 6. A missing or non-numeric
    ``success_threshold`` falls back to the configured default.
    """

    success_threshold: float = SUCCESS_THRESHOLD
    min_valid_frames: int = MIN_VALID_FRAMES
    max_frames: Optional[int] = None
    allow_mirror: bool = False
    alignment: str = "nearest"

    def __post_init__(self) -> None:
        mode = (self.alignment or "nearest").strip().lower()
        if mode not in ALIGNMENT_MODES:
            raise ValueError(f"alignment must be one of {ALIGNMENT_MODES}; received {self.alignment!r}.")
        object.__setattr__(self, "alignment", mode)
        object.__setattr__(self, "success_threshold", _coerce_threshold(self.success_threshold))

    @property
    def effective_min_valid_frames(self) -> int:
        return int(self.min_valid_frames) if self.min_valid_frames and self.min_valid_frames > 0 else FALLBACK_MIN_VALID_FRAMES


class FrameComparison(NamedTuple):
    distance: Optional[float]
    mode: str


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def is_handedness_mismatch(reference: LandmarkFrame, user: LandmarkFrame) -> bool:
    """True when both frames confidently report different hands."""
    return (
        reference.handedness.is_known
        and user.handedness.is_known
        and reference.handedness != user.handedness
        and reference.confidence >= HANDEDNESS_CONFIDENCE
        and user.confidence >= HANDEDNESS_CONFIDENCE
    )


def compare_frames(reference: LandmarkFrame, user: LandmarkFrame, *, allow_mirror: bool = False) -> FrameComparison:
    """Distance between one aligned frame pair; ``distance`` is None when excluded."""
    if is_handedness_mismatch(reference, user):
        return FrameComparison(MAX_NORM_DISTANCE, "handedness_mismatch")

    ref_points = normalize(reference)
    user_points = normalize(user)
    distance = mean_point_distance(ref_points, user_points)
    if distance is None:
        return FrameComparison(None, "excluded")

    if allow_mirror and not reference.handedness.is_known and not user.handedness.is_known:
        mirrored = mean_point_distance(ref_points, mirror(user_points))
        if mirrored is not None and mirrored < distance:
            return FrameComparison(mirrored, "mirrored")

    return FrameComparison(distance, "geometric")


def align_clips(
    reference: Clip, user: Clip, options: ScoreOptions
) -> Tuple[int, List[Tuple[LandmarkFrame, LandmarkFrame]], Dict[str, Any]]:
    """Return ``(frame_count, aligned pairs, alignment metadata)``.

    Both clips are first resampled to ``min(overlap, max_frames)`` frames; the
    DTW mode then re-pairs the resampled frames along the warping path.
    """
    overlap = min(len(reference.frames), len(user.frames))
    if overlap == 0:
        return 0, [], {}

    frame_count = min(overlap, options.max_frames or overlap)
    ref_sample = resample(reference, frame_count).frames
    user_sample = resample(user, frame_count).frames

    if options.alignment == "dtw":
        path = dtw_alignment(ref_sample, user_sample)
        pairs = [(ref_sample[i], user_sample[j]) for i, j in path]
        extra = {
            "alignment": "dtw",
            "path_length": len(path),
            "alignment_quality": alignment_quality(path, len(ref_sample), len(user_sample)),
        }
        return frame_count, pairs, extra

    return frame_count, list(zip(ref_sample, user_sample)), {"alignment": "nearest"}


def score_motion(reference: Clip, user: Clip, options: Optional[ScoreOptions] = None) -> ScoreResult:
    """Score ``user`` against ``reference``.

    Insufficient data never raises; it yields a failing result whose metadata
    carries a ``reason`` of ``no_frames`` or ``insufficient_frames``.
    """
    opts = options or ScoreOptions()
    frame_count, pairs, extra = align_clips(reference, user, opts)
    if frame_count == 0:
        return ScoreResult(passed=False, score=0.0, metadata={"reason": REASON_NO_FRAMES})

    distances: List[float] = []
    for ref_frame, user_frame in pairs:
        comparison = compare_frames(ref_frame, user_frame, allow_mirror=opts.allow_mirror)
        if comparison.distance is not None:
            distances.append(comparison.distance)

    if len(distances) < opts.effective_min_valid_frames:
        logger.debug(
            "Scoring skipped: %s valid frames < %s required", len(distances), opts.effective_min_valid_frames
        )
        return ScoreResult(
            passed=False,
            score=0.0,
            metadata={"reason": REASON_INSUFFICIENT_FRAMES, "valid_frames": len(distances)},
        )

    avg_distance = float(np.mean(distances))
    normalized = _clamp(avg_distance / MAX_NORM_DISTANCE, 0.0, 1.0)
    score = _clamp(1.0 - normalized, 0.0, 1.0)
    threshold = float(opts.success_threshold)

    metadata: Dict[str, Any] = {
        "avg_distance": avg_distance,
        "valid_frames": len(distances),
        "frame_count": frame_count,
        "threshold": threshold,
    }
    metadata.update(extra)
    return ScoreResult(passed=bool(score >= threshold), score=float(score), metadata=metadata)


class MotionScorer:
    """Scores attempts against references with a fixed set of default options."""

    def __init__(self, options: Optional[ScoreOptions] = None) -> None:
        self.options = options or ScoreOptions()

    def score(self, reference: Clip, user: Clip, options: Optional[ScoreOptions] = None) -> ScoreResult:
        result = score_motion(reference, user, options or self.options)
        logger.info(
            "Scored attempt: pass=%s score=%.3f reason=%s frames=%s/%s",
            result.passed,
            result.score,
            result.reason,
            len(user.frames),
            len(reference.frames),
        )
        return result


def summarize_distances(distances: Sequence[Optional[float]]) -> Dict[str, float]:
    """Min/mean/max over the non-excluded per-frame distances."""
    finite = [float(d) for d in distances if d is not None and math.isfinite(float(d))]
    if not finite:
        return {"min": float("nan"), "mean": float("nan"), "max": float("nan")}
    return {"min": min(finite), "mean": float(np.mean(finite)), "max": max(finite)}


__all__ = [
    "ScoreOptions",
    "FrameComparison",
    "MotionScorer",
    "score_motion",
    "compare_frames",
    "align_clips",
    "is_handedness_mismatch",
    "summarize_distances",
    "REASON_NO_FRAMES",
    "REASON_INSUFFICIENT_FRAMES",
]
