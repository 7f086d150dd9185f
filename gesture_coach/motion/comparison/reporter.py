"""Per-frame comparison reports for scored attempts.

This module turns an aligned reference/user comparison into a tabular
breakdown (one row per aligned frame pair) and a compact JSON payload intended
for coaching feedback or offline debugging of thresholds.
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from gesture_coach.motion.comparison.scoring import (
    ScoreOptions,
    align_clips,
    compare_frames,
    score_motion,
    summarize_distances,
)
from gesture_coach.motion.models import Clip

FRAME_TABLE_COLUMNS = ["index", "reference_ms", "user_ms", "distance", "mode"]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def frame_distance_table(reference: Clip, user: Clip, options: Optional[ScoreOptions] = None) -> pd.DataFrame:
    """Return one row per aligned frame pair.

    ``distance`` is NaN for excluded pairs; ``mode`` records which branch of
    the handedness policy produced the value.
    """
    opts = options or ScoreOptions()
    _frame_count, pairs, _extra = align_clips(reference, user, opts)
    records: list[dict[str, object]] = []
    for idx, (ref_frame, user_frame) in enumerate(pairs):
        comparison = compare_frames(ref_frame, user_frame, allow_mirror=opts.allow_mirror)
        records.append(
            {
                "index": idx,
                "reference_ms": ref_frame.timestamp_ms,
                "user_ms": user_frame.timestamp_ms,
                "distance": float("nan") if comparison.distance is None else float(comparison.distance),
                "mode": comparison.mode,
            }
        )
    if not records:
        return pd.DataFrame(columns=FRAME_TABLE_COLUMNS)
    return pd.DataFrame.from_records(records, columns=FRAME_TABLE_COLUMNS)


def _json_safe(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def generate_score_report(
    reference: Clip,
    user: Clip,
    options: Optional[ScoreOptions] = None,
    *,
    output_path: str | Path | None = None,
) -> Dict[str, Any]:
    """Score an attempt and bundle the result with its per-frame breakdown.

    When ``output_path`` is provided, the report is also written as JSON.
    """
    opts = options or ScoreOptions()
    result = score_motion(reference, user, opts)
    table = frame_distance_table(reference, user, opts)

    distances = [None if pd.isna(d) else float(d) for d in table["distance"].tolist()]
    mode_counts = {str(k): int(v) for k, v in table["mode"].value_counts().items()} if not table.empty else {}
    frames = [
        {key: _json_safe(value) for key, value in row.items()}
        for row in table.to_dict(orient="records")
    ]

    report: Dict[str, Any] = {
        "generated_at": _now_iso(),
        "result": result.to_dict(),
        "options": {
            "success_threshold": opts.success_threshold,
            "min_valid_frames": opts.effective_min_valid_frames,
            "max_frames": opts.max_frames,
            "allow_mirror": opts.allow_mirror,
            "alignment": opts.alignment,
        },
        "summary": {key: _json_safe(val) for key, val in summarize_distances(distances).items()},
        "modes": mode_counts,
        "frames": frames,
    }

    if output_path is not None:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    return report


__all__ = ["frame_distance_table", "generate_score_report", "FRAME_TABLE_COLUMNS"]
