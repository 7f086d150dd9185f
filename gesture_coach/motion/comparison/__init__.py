"""Tools for aligning and scoring gesture clips.

Includes nearest-index resampling, optional Dynamic Time Warping alignment, the
pass/fail motion scorer, and per-frame reports.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "resample",
    "dtw_alignment",
    "ScoreOptions",
    "MotionScorer",
    "score_motion",
    "compare_frames",
    "frame_distance_table",
    "generate_score_report",
]

_RESAMPLE_EXPORTS = {"resample"}
_DTW_EXPORTS = {"dtw_alignment"}
_SCORING_EXPORTS = {"ScoreOptions", "MotionScorer", "score_motion", "compare_frames"}
_REPORT_EXPORTS = {"frame_distance_table", "generate_score_report"}


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name in _RESAMPLE_EXPORTS:
        from . import resampling as _resampling

        return getattr(_resampling, name)
    if name in _DTW_EXPORTS:
        from . import dtw as _dtw

        return getattr(_dtw, name)
    if name in _SCORING_EXPORTS:
        from . import scoring as _scoring

        return getattr(_scoring, name)
    if name in _REPORT_EXPORTS:
        from . import reporter as _reporter

        return getattr(_reporter, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(set(list(globals()) + __all__))
