"""JSON persistence for landmark clips.

Payload layout::

    {
      "target": "hands",
      "fps": 12.0,
      "duration_ms": 2000.0,
      "frames": [
        {"timestamp_ms": 0.0, "handedness": "Right", "confidence": 0.93,
         "points": [[x, y, z], ...]},
        ...
      ]
    }
"""

from __future__ import annotations

import json
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any, Dict, Mapping

from gesture_coach.motion.config import HAND_TARGET
from gesture_coach.motion.models import Clip, LandmarkFrame


def clip_to_dict(clip: Clip) -> Dict[str, Any]:
    return {
        "target": clip.target,
        "fps": clip.fps,
        "duration_ms": clip.duration_ms,
        "frames": [
            {
                "timestamp_ms": frame.timestamp_ms,
                "handedness": frame.handedness.value,
                "confidence": frame.confidence,
                "points": [list(point) for point in frame.points],
            }
            for frame in clip.frames
        ],
    }


def clip_from_dict(payload: Mapping[str, Any]) -> Clip:
    """Build a Clip from ``clip_to_dict`` output; raise ValueError when malformed."""
    if not isinstance(payload, Mapping):
        raise ValueError("Clip payload must be a JSON object")
    raw_frames = payload.get("frames", [])
    if not isinstance(raw_frames, list):
        raise ValueError("Clip payload 'frames' must be a list")

    try:
        frames = tuple(
            LandmarkFrame(
                points=tuple(tuple(point) for point in raw.get("points", [])),
                handedness=raw.get("handedness"),
                confidence=float(raw.get("confidence", 0.0)),
                timestamp_ms=float(raw.get("timestamp_ms", 0.0)),
            )
            for raw in raw_frames
        )
        return Clip(
            frames=frames,
            fps=float(payload.get("fps", 0.0)),
            duration_ms=float(payload.get("duration_ms", 0.0)),
            target=str(payload.get("target", HAND_TARGET)),
        )
    except (AttributeError, TypeError) as exc:
        raise ValueError(f"Malformed clip payload: {exc}") from exc


def save_clip(clip: Clip, path: str | Path) -> Path:
    """Write ``clip`` as JSON, replacing ``path`` atomically."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(clip_to_dict(clip), indent=2) + "\n"
    with NamedTemporaryFile("w", dir=target.parent, delete=False, encoding="utf-8") as tmp:
        tmp.write(payload)
        temp_path = Path(tmp.name)
    temp_path.replace(target)
    return target


def load_clip(path: str | Path) -> Clip:
    source = Path(path).expanduser()
    if not source.exists():
        raise FileNotFoundError(f"Clip file not found: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not parse {source}: {exc}") from exc
    return clip_from_dict(payload)


__all__ = ["clip_to_dict", "clip_from_dict", "save_clip", "load_clip"]
