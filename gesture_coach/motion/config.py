"""Configuration for gesture capture and motion scoring.

Settings include:
- DEFAULT_CAPTURE_FPS: Sampling rate for live capture and reference decoding.
- SUCCESS_THRESHOLD: Minimum score (0-1) for an attempt to pass.
- MIN_VALID_FRAMES: Minimum number of comparable frame pairs needed to score.
- HANDEDNESS_CONFIDENCE: Confidence at which a Left/Right label is trusted.
- MAX_NORM_DISTANCE: Mean normalized distance that maps to a score of 0.
- TARGET_POINT_COUNTS: Landmark count per tracking target.

Thresholds can be overridden via environment variables to ease experimentation.
"""

from __future__ import annotations

import logging
import math
import os
import warnings
from typing import Dict

from gesture_coach.env import get_env


def _configure_logger() -> logging.Logger:
    logger = logging.getLogger("gesture_coach.motion")
    level_name = get_env("LOG_LEVEL") or os.getenv("LOG_LEVEL")
    if level_name:
        level = getattr(logging, level_name.upper(), logging.INFO)
        logger.setLevel(level)
    return logger


MOTION_LOGGER = _configure_logger()
logger = MOTION_LOGGER


def _get_env_float(key: str, default: float) -> float:
    raw = get_env(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_int(key: str, default: int) -> int:
    raw = get_env(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


HAND_TARGET = "hands"
HAND_POINT_COUNT = 21

# MediaPipe hand model indices used as the normalization frame.
WRIST_INDEX = 0
MIDDLE_FINGER_MCP_INDEX = 9

TARGET_POINT_COUNTS: Dict[str, int] = {HAND_TARGET: HAND_POINT_COUNT}

# Mean normalized distance at which the score bottoms out; also the forced
# per-frame distance for a confident handedness mismatch.
MAX_NORM_DISTANCE: float = 0.5

DEFAULT_CAPTURE_FPS: float = _get_env_float("CAPTURE_FPS", 12.0)
SUCCESS_THRESHOLD: float = _get_env_float("SUCCESS_THRESHOLD", 0.7)
MIN_VALID_FRAMES: int = _get_env_int("MIN_VALID_FRAMES", 6)
HANDEDNESS_CONFIDENCE: float = _get_env_float("HANDEDNESS_CONFIDENCE", 0.6)

# Reference decoding: seek tolerance and end-of-clip guard, in seconds.
SEEK_TOLERANCE_S: float = 0.001
END_OF_CLIP_EPSILON_S: float = 0.001

# Raster size used when a video does not report its dimensions.
DEFAULT_RASTER_SIZE = (640, 480)

__all__ = [
    "MOTION_LOGGER",
    "HAND_TARGET",
    "HAND_POINT_COUNT",
    "TARGET_POINT_COUNTS",
    "MAX_NORM_DISTANCE",
    "DEFAULT_CAPTURE_FPS",
    "SUCCESS_THRESHOLD",
    "MIN_VALID_FRAMES",
    "HANDEDNESS_CONFIDENCE",
    "validate_config_values",
    "print_config",
]


def _check_unit_interval() -> None:
    for name, value in (
        ("SUCCESS_THRESHOLD", SUCCESS_THRESHOLD),
        ("HANDEDNESS_CONFIDENCE", HANDEDNESS_CONFIDENCE),
    ):
        if not 0.0 <= value <= 1.0:
            warnings.warn(
                f"{name}={value} is outside [0,1]; please correct the environment or config.",
                RuntimeWarning,
                stacklevel=2,
            )
            logger.warning("%s is outside [0,1]: %s", name, value)


def _check_capture_fps() -> None:
    if not math.isfinite(DEFAULT_CAPTURE_FPS) or DEFAULT_CAPTURE_FPS <= 0:
        warnings.warn(
            f"DEFAULT_CAPTURE_FPS={DEFAULT_CAPTURE_FPS} is not a positive number; capture will refuse to start.",
            RuntimeWarning,
            stacklevel=2,
        )
        logger.warning("DEFAULT_CAPTURE_FPS is not positive: %s", DEFAULT_CAPTURE_FPS)
    elif DEFAULT_CAPTURE_FPS > 60:
        warnings.warn(
            f"DEFAULT_CAPTURE_FPS={DEFAULT_CAPTURE_FPS} exceeds typical camera rates; most frames will be dropped.",
            RuntimeWarning,
            stacklevel=2,
        )
        logger.warning("DEFAULT_CAPTURE_FPS unusually high: %s", DEFAULT_CAPTURE_FPS)


def _check_min_valid_frames() -> None:
    if MIN_VALID_FRAMES <= 0:
        warnings.warn(
            f"MIN_VALID_FRAMES={MIN_VALID_FRAMES} is non-positive; the scorer falls back to 6.",
            RuntimeWarning,
            stacklevel=2,
        )
        logger.warning("MIN_VALID_FRAMES is non-positive: %s", MIN_VALID_FRAMES)


def validate_config_values() -> None:
    """Validate current config values and emit warnings for suspicious settings."""
    _check_unit_interval()
    _check_capture_fps()
    _check_min_valid_frames()


def print_config() -> None:
    """Print configuration values for debugging purposes."""
    print("Gesture motion configuration:")
    print(f"  Capture fps: {DEFAULT_CAPTURE_FPS}")
    print(f"  Success threshold: {SUCCESS_THRESHOLD}")
    print(f"  Min valid frames: {MIN_VALID_FRAMES}")
    print(f"  Handedness confidence: {HANDEDNESS_CONFIDENCE}")
    print(f"  Max normalized distance: {MAX_NORM_DISTANCE}")
    print(f"  Target point counts: {TARGET_POINT_COUNTS}")


# Run validation at import to surface misconfigurations early.
validate_config_values()
