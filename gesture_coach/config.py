from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional

from .env import get_env
from .motion.config import (
    DEFAULT_CAPTURE_FPS,
    HAND_TARGET,
    HANDEDNESS_CONFIDENCE,
    MIN_VALID_FRAMES,
    SUCCESS_THRESHOLD,
)

DEFAULT_CONFIG_CANDIDATES: tuple[str, ...] = ("config/gesture_coach.toml", "gesture_coach.toml")


@dataclass(frozen=True)
class ScoringConfig:
    success_threshold: float = SUCCESS_THRESHOLD
    min_valid_frames: int = MIN_VALID_FRAMES
    max_frames: Optional[int] = None
    allow_mirror: bool = False
    alignment: str = "nearest"


@dataclass(frozen=True)
class CaptureConfig:
    fps: float = DEFAULT_CAPTURE_FPS
    target: str = HAND_TARGET
    camera_id: int = 0


@dataclass(frozen=True)
class CacheConfig:
    max_entries: Optional[int] = None
    ttl_seconds: Optional[float] = None


@dataclass(frozen=True)
class AppConfig:
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    for candidate in DEFAULT_CONFIG_CANDIDATES:
        default_path = Path(candidate)
        if default_path.exists():
            return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else {}


def _optional_positive(value: Any, cast: type) -> Any:
    if value is None:
        return None
    try:
        parsed = cast(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def _coerce_scoring(raw: Mapping[str, Any]) -> ScoringConfig:
    base = ScoringConfig()
    if not raw:
        return base
    try:
        threshold = float(raw.get("success_threshold", base.success_threshold))
        min_valid = int(raw.get("min_valid_frames", base.min_valid_frames))
    except (TypeError, ValueError):
        return base
    alignment = str(raw.get("alignment", base.alignment)).strip().lower()
    if alignment not in ("nearest", "dtw"):
        alignment = base.alignment
    return ScoringConfig(
        success_threshold=threshold,
        min_valid_frames=min_valid,
        max_frames=_optional_positive(raw.get("max_frames"), int),
        allow_mirror=bool(raw.get("allow_mirror", base.allow_mirror)),
        alignment=alignment,
    )


def _coerce_capture(raw: Mapping[str, Any]) -> CaptureConfig:
    base = CaptureConfig()
    if not raw:
        return base
    fps = _optional_positive(raw.get("fps"), float) or base.fps
    try:
        camera_id = int(raw.get("camera_id", base.camera_id))
    except (TypeError, ValueError):
        camera_id = base.camera_id
    return CaptureConfig(fps=fps, target=str(raw.get("target", base.target)), camera_id=camera_id)


def _coerce_cache(raw: Mapping[str, Any]) -> CacheConfig:
    return CacheConfig(
        max_entries=_optional_positive(raw.get("max_entries"), int),
        ttl_seconds=_optional_positive(raw.get("ttl_seconds"), float),
    )


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    return AppConfig(
        scoring=_coerce_scoring(_section(raw, "scoring")),
        capture=_coerce_capture(_section(raw, "capture")),
        cache=_coerce_cache(_section(raw, "cache")),
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once, falling back to built-in defaults."""
    path = _config_path()
    if not path:
        return AppConfig()
    data = _load_toml(path)
    return _build_config(data)


def scoring_options(config: AppConfig | None = None):
    """Default ScoreOptions for the effective configuration."""
    from .motion.comparison.scoring import ScoreOptions

    scoring = (config or get_config()).scoring
    return ScoreOptions(
        success_threshold=scoring.success_threshold,
        min_valid_frames=scoring.min_valid_frames,
        max_frames=scoring.max_frames,
        allow_mirror=scoring.allow_mirror,
        alignment=scoring.alignment,
    )


def clip_cache(config: AppConfig | None = None):
    """Reference-clip cache bounded by the ``[cache]`` section."""
    from .motion.capture.cache import ClipCache

    cache = (config or get_config()).cache
    return ClipCache(max_entries=cache.max_entries, ttl_seconds=cache.ttl_seconds)


def as_dict() -> dict[str, Any]:
    """Return the effective configuration for debug/CLI display."""
    config = get_config()
    return {
        "scoring": {
            "success_threshold": config.scoring.success_threshold,
            "min_valid_frames": config.scoring.min_valid_frames,
            "max_frames": config.scoring.max_frames,
            "allow_mirror": config.scoring.allow_mirror,
            "alignment": config.scoring.alignment,
        },
        "capture": {
            "fps": config.capture.fps,
            "target": config.capture.target,
            "camera_id": config.capture.camera_id,
        },
        "cache": {
            "max_entries": config.cache.max_entries,
            "ttl_seconds": config.cache.ttl_seconds,
        },
        "handedness_confidence": HANDEDNESS_CONFIDENCE,
        "source": str(_config_path() or "defaults"),
    }
