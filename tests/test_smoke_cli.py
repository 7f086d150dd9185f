from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from gesture_coach import config as app_config
from gesture_coach.cli import app
from gesture_coach.motion.io import save_clip
from gesture_coach.motion.models import Clip, Handedness, LandmarkFrame


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GESTURE_COACH_CONFIG", raising=False)
    app_config.get_config.cache_clear()
    yield
    app_config.get_config.cache_clear()


def _clip(handedness: Handedness = Handedness.RIGHT, count: int = 10) -> Clip:
    points = tuple((0.3 + 0.02 * i, 0.7 - 0.01 * (i % 4), 0.0) for i in range(21))
    frames = tuple(
        LandmarkFrame(points=points, handedness=handedness, confidence=0.9, timestamp_ms=i * 83.0) for i in range(count)
    )
    return Clip(frames=frames, fps=12.0, duration_ms=count * 83.0)


def test_cli_score_smoke(tmp_path: Path) -> None:
    runner = CliRunner()
    reference = save_clip(_clip(), tmp_path / "reference.json")
    attempt = save_clip(_clip(), tmp_path / "attempt.json")
    report = tmp_path / "report.json"

    result = runner.invoke(app, ["score", str(reference), str(attempt), "--report", str(report)])
    assert result.exit_code == 0, result.stdout
    assert "PASS" in result.stdout
    assert "valid_frames: 10" in result.stdout
    assert report.exists()
    assert json.loads(report.read_text(encoding="utf-8"))["result"]["pass"] is True

    as_json = runner.invoke(app, ["score", str(reference), str(attempt), "--json", "--alignment", "dtw"])
    assert as_json.exit_code == 0, as_json.stdout
    payload = json.loads(as_json.stdout)
    assert payload["pass"] is True
    assert payload["metadata"]["alignment"] == "dtw"


def test_cli_score_reports_failures(tmp_path: Path) -> None:
    runner = CliRunner()
    reference = save_clip(_clip(), tmp_path / "reference.json")
    wrong_hand = save_clip(_clip(Handedness.LEFT), tmp_path / "left.json")
    short = save_clip(_clip(count=3), tmp_path / "short.json")

    mismatch = runner.invoke(app, ["score", str(reference), str(wrong_hand)])
    assert mismatch.exit_code == 0
    assert "FAIL" in mismatch.stdout

    too_short = runner.invoke(app, ["score", str(reference), str(short)])
    assert "insufficient_frames" in too_short.stdout

    missing = runner.invoke(app, ["score", str(reference), str(tmp_path / "nope.json")])
    assert missing.exit_code == 1

    bad_alignment = runner.invoke(app, ["score", str(reference), str(reference), "--alignment", "spline"])
    assert bad_alignment.exit_code == 1


def test_cli_config_and_missing_video(tmp_path: Path) -> None:
    runner = CliRunner()
    shown = runner.invoke(app, ["config"])
    assert shown.exit_code == 0, shown.stdout
    assert "Config source: defaults" in shown.stdout
    assert "Scoring:" in shown.stdout

    missing = runner.invoke(app, ["extract-reference", str(tmp_path / "missing.mp4")])
    assert missing.exit_code == 1
