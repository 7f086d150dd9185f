"""Hand landmark extraction.

The MediaPipe-backed detector is imported lazily so that scoring and tests can
run with any object exposing ``detect(image)``.
"""

from __future__ import annotations

from typing import Any

from .detector import PoseDetector
from .extractor import HandLandmarkExtractor, parse_detection, pick_best_hand_index

__all__ = [
    "PoseDetector",
    "HandLandmarkExtractor",
    "parse_detection",
    "pick_best_hand_index",
    "MediaPipeHandDetector",
]


def __getattr__(name: str) -> Any:  # pragma: no cover - exercised indirectly
    if name == "MediaPipeHandDetector":
        from .mediapipe_detector import MediaPipeHandDetector

        return MediaPipeHandDetector
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
