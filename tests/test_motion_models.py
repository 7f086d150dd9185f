from __future__ import annotations

import json
from pathlib import Path

import pytest

from gesture_coach.motion.io import clip_from_dict, clip_to_dict, load_clip, save_clip
from gesture_coach.motion.models import Clip, Handedness, LandmarkFrame, ScoreResult


def _points() -> tuple[tuple[float, float, float], ...]:
    return tuple((0.1 * i, 0.05 * i, 0.0) for i in range(21))


def test_handedness_from_label_is_strict() -> None:
    assert Handedness.from_label("Left") is Handedness.LEFT
    assert Handedness.from_label("Right") is Handedness.RIGHT
    for raw in ("left", "RIGHT", "", None, 1):
        assert Handedness.from_label(raw) is Handedness.UNKNOWN
    assert not Handedness.UNKNOWN.is_known


def test_landmark_frame_validates_confidence_and_timestamp() -> None:
    with pytest.raises(ValueError):
        LandmarkFrame(points=_points(), confidence=1.2)
    with pytest.raises(ValueError):
        LandmarkFrame(points=_points(), confidence=float("nan"))
    with pytest.raises(ValueError):
        LandmarkFrame(points=_points(), timestamp_ms=float("inf"))

    frame = LandmarkFrame(points=[{"x": 1, "y": 2}], handedness="Right", confidence=1)
    assert frame.points == ((1.0, 2.0, 0.0),)
    assert frame.handedness is Handedness.RIGHT


def test_clip_validates_order_and_point_count() -> None:
    early = LandmarkFrame(points=_points(), timestamp_ms=0.0)
    late = LandmarkFrame(points=_points(), timestamp_ms=100.0)
    with pytest.raises(ValueError):
        Clip(frames=(late, early))
    with pytest.raises(ValueError):
        Clip(frames=(LandmarkFrame(points=_points()[:5]),), target="hands")
    with pytest.raises(ValueError):
        Clip(duration_ms=-1.0)

    # Unknown targets accept any point count.
    assert len(Clip(frames=(LandmarkFrame(points=_points()[:5]),), target="face")) == 1
    assert Clip(frames=(early, late)).timestamps == (0.0, 100.0)


def test_score_result_to_dict() -> None:
    result = ScoreResult(passed=False, score=0.0, metadata={"reason": "no_frames"})
    assert result.to_dict() == {"pass": False, "score": 0.0, "metadata": {"reason": "no_frames"}}
    assert result.reason == "no_frames"


def test_clip_json_roundtrip(tmp_path: Path) -> None:
    frames = (
        LandmarkFrame(points=_points(), handedness=Handedness.LEFT, confidence=0.75, timestamp_ms=0.0),
        LandmarkFrame(points=(), timestamp_ms=83.0),
    )
    clip = Clip(frames=frames, fps=12.0, duration_ms=83.0, target="hands")

    path = save_clip(clip, tmp_path / "clips" / "ref.json")
    assert path.exists()
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["frames"][0]["handedness"] == "Left"

    restored = load_clip(path)
    assert restored == clip
    assert clip_from_dict(clip_to_dict(clip)) == clip


def test_load_clip_rejects_malformed_payloads(tmp_path: Path) -> None:
    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        load_clip(bad_json)

    with pytest.raises(ValueError):
        clip_from_dict({"frames": "nope"})
    with pytest.raises(ValueError):
        clip_from_dict({"frames": [[1, 2, 3]]})
    with pytest.raises(ValueError):
        clip_from_dict({"frames": [{"timestamp_ms": 10.0}, {"timestamp_ms": 5.0}]})
    with pytest.raises(FileNotFoundError):
        load_clip(tmp_path / "missing.json")
