from __future__ import annotations

from pathlib import Path

import pytest

from gesture_coach import config as app_config
from gesture_coach.env import get_env
from gesture_coach.motion import config as motion_config


@pytest.fixture(autouse=True)
def _fresh_config():
    app_config.get_config.cache_clear()
    yield
    app_config.get_config.cache_clear()


def test_get_env_uses_prefix(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GESTURE_COACH_CAPTURE_FPS", "15")
    assert get_env("CAPTURE_FPS") == "15"
    assert get_env("MISSING_SETTING", "fallback") == "fallback"


def test_defaults_without_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("GESTURE_COACH_CONFIG", raising=False)
    config = app_config.get_config()
    assert config == app_config.AppConfig()
    assert app_config.as_dict()["source"] == "defaults"


def test_toml_config_is_loaded(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "coach.toml"
    path.write_text(
        "\n".join(
            [
                "[scoring]",
                "success_threshold = 0.8",
                "min_valid_frames = 4",
                "max_frames = 24",
                "allow_mirror = true",
                'alignment = "dtw"',
                "",
                "[capture]",
                "fps = 15",
                "camera_id = 1",
                "",
                "[cache]",
                "max_entries = 8",
                "ttl_seconds = -5",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("GESTURE_COACH_CONFIG", str(path))

    config = app_config.get_config()
    assert config.scoring.success_threshold == pytest.approx(0.8)
    assert config.scoring.max_frames == 24
    assert config.capture.fps == pytest.approx(15.0)
    assert config.capture.camera_id == 1
    assert config.cache.max_entries == 8
    assert config.cache.ttl_seconds is None

    options = app_config.scoring_options()
    assert options.alignment == "dtw"
    assert options.allow_mirror is True
    assert options.effective_min_valid_frames == 4
    assert app_config.as_dict()["source"] == str(path)

    cache = app_config.clip_cache()
    assert cache.max_entries == 8
    assert cache.ttl_seconds is None


def test_session_uses_configured_cache_bounds(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from gesture_coach.motion.capture.cache import ClipCache
    from gesture_coach.motion.landmarks.extractor import HandLandmarkExtractor
    from gesture_coach.motion.session import ImitationSession

    path = tmp_path / "coach.toml"
    path.write_text("[cache]\nmax_entries = 3\nttl_seconds = 60\n", encoding="utf-8")
    monkeypatch.setenv("GESTURE_COACH_CONFIG", str(path))

    session = ImitationSession(HandLandmarkExtractor(None))
    assert session.loader.cache.max_entries == 3
    assert session.loader.cache.ttl_seconds == pytest.approx(60.0)

    explicit = ClipCache(max_entries=1)
    assert ImitationSession(HandLandmarkExtractor(None), cache=explicit).loader.cache is explicit


def test_invalid_alignment_falls_back(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "coach.toml"
    path.write_text('[scoring]\nalignment = "spline"\n', encoding="utf-8")
    monkeypatch.setenv("GESTURE_COACH_CONFIG", str(path))
    assert app_config.get_config().scoring.alignment == "nearest"


def test_validate_config_values_warns(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(motion_config, "SUCCESS_THRESHOLD", 1.5)
    monkeypatch.setattr(motion_config, "MIN_VALID_FRAMES", 0)
    with pytest.warns(RuntimeWarning) as record:
        motion_config.validate_config_values()
    messages = " ".join(str(w.message) for w in record)
    assert "SUCCESS_THRESHOLD" in messages
    assert "MIN_VALID_FRAMES" in messages


def test_print_config_lists_values(capsys: pytest.CaptureFixture[str]) -> None:
    motion_config.print_config()
    out = capsys.readouterr().out
    assert "Capture fps" in out
    assert "Success threshold" in out
