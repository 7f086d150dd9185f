"""Hand-motion capture and grading.

This module is **lazy-imported** so that scoring a pair of saved clips does not
pull in OpenCV or MediaPipe, which only the capture side needs.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "Handedness",
    "LandmarkFrame",
    "Clip",
    "ScoreResult",
    "CameraFrame",
    "MotionError",
    "ConfigurationError",
    "ExtractionError",
    "ClipExtractionFailure",
    "FrameSampler",
    "LandmarkRecorder",
    "ReferenceClipLoader",
    "ReferenceKey",
    "ClipCache",
    "HandLandmarkExtractor",
    "MediaPipeHandDetector",
    "normalize",
    "mirror",
    "resample",
    "ScoreOptions",
    "MotionScorer",
    "score_motion",
    "ImitationSession",
    "load_clip",
    "save_clip",
    "MOTION_LOGGER",
    "DEFAULT_CAPTURE_FPS",
    "SUCCESS_THRESHOLD",
    "MIN_VALID_FRAMES",
    "HANDEDNESS_CONFIDENCE",
    "MAX_NORM_DISTANCE",
    "validate_config_values",
    "print_config",
]

_CONFIG_EXPORTS = {
    "MOTION_LOGGER",
    "DEFAULT_CAPTURE_FPS",
    "SUCCESS_THRESHOLD",
    "MIN_VALID_FRAMES",
    "HANDEDNESS_CONFIDENCE",
    "MAX_NORM_DISTANCE",
    "validate_config_values",
    "print_config",
}
_MODEL_EXPORTS = {"Handedness", "LandmarkFrame", "Clip", "ScoreResult", "CameraFrame"}
_ERROR_EXPORTS = {"MotionError", "ConfigurationError", "ExtractionError", "ClipExtractionFailure"}
_CAPTURE_EXPORTS = {"FrameSampler", "LandmarkRecorder", "ReferenceClipLoader", "ReferenceKey", "ClipCache"}
_LANDMARK_EXPORTS = {"HandLandmarkExtractor", "MediaPipeHandDetector"}
_METRICS_EXPORTS = {"normalize", "mirror"}
_COMPARISON_EXPORTS = {"resample", "ScoreOptions", "MotionScorer", "score_motion"}
_IO_EXPORTS = {"load_clip", "save_clip"}


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name in _CONFIG_EXPORTS:
        from . import config as _config

        return getattr(_config, name)
    if name in _MODEL_EXPORTS:
        from . import models as _models

        return getattr(_models, name)
    if name in _ERROR_EXPORTS:
        from . import errors as _errors

        return getattr(_errors, name)
    if name in _CAPTURE_EXPORTS:
        from . import capture as _capture

        return getattr(_capture, name)
    if name in _LANDMARK_EXPORTS:
        from . import landmarks as _landmarks

        return getattr(_landmarks, name)
    if name in _METRICS_EXPORTS:
        from . import metrics as _metrics

        return getattr(_metrics, name)
    if name in _COMPARISON_EXPORTS:
        from . import comparison as _comparison

        return getattr(_comparison, name)
    if name in _IO_EXPORTS:
        from . import io as _io

        return getattr(_io, name)
    if name == "ImitationSession":
        from .session import ImitationSession

        return ImitationSession
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:  # pragma: no cover - trivial
    return sorted(set(list(globals()) + __all__))
