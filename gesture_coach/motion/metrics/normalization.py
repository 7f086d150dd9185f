"""Normalization utilities for comparing hand landmarks across recordings.

The core challenge for cross-recording comparisons is that hands vary in:
- position in the frame (translation)
- distance from the camera (scale)

This module maps each frame into a hand-centred canonical frame:
- the wrist (landmark 0) becomes the origin
- the wrist-to-middle-finger-base distance (landmark 9) becomes one unit
"""

from __future__ import annotations

import math
from typing import Any, Sequence

import numpy as np

from gesture_coach.motion.config import MIDDLE_FINGER_MCP_INDEX, WRIST_INDEX
from gesture_coach.motion.models import LandmarkFrame


def _as_points_array(points: Any) -> np.ndarray:
    """Return an (n_points, 3) float array from frames, arrays, or point lists."""
    if isinstance(points, LandmarkFrame):
        points = points.points
    arr = np.asarray(points, dtype=float)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=float)
    if arr.ndim != 2:
        raise ValueError("Expected points shaped (n_points, 2 or 3).")
    if arr.shape[1] == 3:
        return arr
    if arr.shape[1] == 2:
        return np.concatenate([arr, np.zeros((arr.shape[0], 1), dtype=float)], axis=1)
    raise ValueError("Expected points with 2 or 3 coordinates.")


def hand_scale(points: np.ndarray) -> float:
    """Wrist to middle-finger-base distance, or 1.0 when that is unusable."""
    if points.shape[0] <= max(WRIST_INDEX, MIDDLE_FINGER_MCP_INDEX):
        return 1.0
    scale = float(np.linalg.norm(points[MIDDLE_FINGER_MCP_INDEX] - points[WRIST_INDEX]))
    if not math.isfinite(scale) or scale == 0.0:
        return 1.0
    return scale


def normalize(frame: LandmarkFrame | Sequence[Any] | np.ndarray) -> np.ndarray:
    """Translate points to the wrist and scale them to hand-size units.

    Args:
        frame: a LandmarkFrame, or raw (x, y[, z]) points.

    Returns:
        (n_points, 3) array; empty input yields a (0, 3) array.
    """
    pts = _as_points_array(frame)
    if pts.shape[0] == 0:
        return pts
    origin = pts[WRIST_INDEX]
    return (pts - origin) / hand_scale(pts)


def mirror(points: Sequence[Any] | np.ndarray) -> np.ndarray:
    """Reflect points across the vertical axis (negate x)."""
    out = _as_points_array(points).copy()
    out[:, 0] = -out[:, 0]
    return out


def mean_point_distance(points_a: np.ndarray, points_b: np.ndarray) -> float | None:
    """Mean Euclidean distance between index-paired points.

    Pairs are truncated to the shorter set; returns None when either is empty.
    """
    count = min(int(points_a.shape[0]), int(points_b.shape[0]))
    if count == 0:
        return None
    diffs = points_a[:count] - points_b[:count]
    return float(np.mean(np.linalg.norm(diffs, axis=1)))


__all__ = ["normalize", "mirror", "hand_scale", "mean_point_distance"]
