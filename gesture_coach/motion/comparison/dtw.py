"""Dynamic Time Warping (DTW) alignment of landmark clips.

Nearest-index resampling assumes both performers move at the same tempo. When
one attempt rushes or lingers over part of a gesture, DTW pairs each frame with
its closest counterpart in the other clip instead. Frames are compared in the
hand-normalized space so the warping ignores position and scale.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from dtaidistance import dtw_ndim

from gesture_coach.motion.metrics.normalization import normalize
from gesture_coach.motion.models import LandmarkFrame


def _feature_rows(frames: Sequence[LandmarkFrame]) -> tuple[list[int], list[np.ndarray]]:
    """Return (source indices, normalized point arrays) for frames with landmarks."""
    indices: list[int] = []
    rows: list[np.ndarray] = []
    for idx, frame in enumerate(frames):
        pts = normalize(frame)
        if pts.shape[0] == 0:
            continue
        indices.append(idx)
        rows.append(pts)
    return indices, rows


def _stack(rows: Sequence[np.ndarray], n_points: int) -> np.ndarray:
    return np.ascontiguousarray(
        np.stack([row[:n_points].reshape(-1) for row in rows], axis=0), dtype=np.double
    )


def dtw_alignment(
    reference: Sequence[LandmarkFrame], user: Sequence[LandmarkFrame]
) -> list[tuple[int, int]]:
    """Return the DTW warping path as ``(reference_index, user_index)`` pairs.

    Frames without landmarks take no part in the warping. Returns an empty path
    when either side has no usable frames.
    """
    ref_idx, ref_rows = _feature_rows(reference)
    user_idx, user_rows = _feature_rows(user)
    if not ref_rows or not user_rows:
        return []

    n_points = min(min(r.shape[0] for r in ref_rows), min(u.shape[0] for u in user_rows))
    ref_matrix = _stack(ref_rows, n_points)
    user_matrix = _stack(user_rows, n_points)

    path = dtw_ndim.warping_path(ref_matrix, user_matrix)
    return [(ref_idx[int(i)], user_idx[int(j)]) for i, j in path]


def alignment_quality(path: Sequence[tuple[int, int]], len_a: int, len_b: int) -> float:
    """Share of diagonal steps in the path scaled by the length ratio (0-100)."""
    if len(path) < 2 or len_a <= 0 or len_b <= 0:
        return 0.0
    diag_steps = 0
    total_steps = len(path) - 1
    for (i0, j0), (i1, j1) in zip(path, path[1:]):
        if (i1 - i0) == 1 and (j1 - j0) == 1:
            diag_steps += 1
    diag_ratio = diag_steps / max(1, total_steps)
    length_ratio = min(len_a, len_b) / max(len_a, len_b)
    return float(100.0 * diag_ratio * length_ratio)


__all__ = ["dtw_alignment", "alignment_quality"]
