"""MediaPipe Tasks hand detector.

Wraps ``mediapipe.tasks.python.vision.HandLandmarker`` in IMAGE mode so each
frame is processed independently (reference frames are visited by seeking, and
live frames may be dropped, so the VIDEO mode's monotonic timestamps do not
hold). The ``.task`` model is downloaded once to a local cache unless
``GESTURE_COACH_HAND_LANDMARKER_MODEL_PATH`` points at an existing file.
"""

from __future__ import annotations

import shutil
import threading
import urllib.request
from pathlib import Path
from typing import Any, Dict, List, Optional

import mediapipe as mp
import numpy as np

from gesture_coach.env import get_env
from gesture_coach.motion.config import MOTION_LOGGER as logger

DEFAULT_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/hand_landmarker/"
    "hand_landmarker/float16/1/hand_landmarker.task"
)


def _env_conf(name: str, default: float) -> float:
    raw = get_env(name)
    if not raw:
        return float(default)
    try:
        return float(np.clip(float(raw), 0.0, 1.0))
    except ValueError:
        return float(default)


def default_model_path() -> Path:
    base = Path(get_env("CACHE_DIR") or Path.home() / ".cache" / "gesture_coach")
    return Path(base).expanduser() / "models" / "hand_landmarker.task"


def ensure_hand_landmarker_model() -> Path:
    """Return a local model path, downloading the model when missing."""
    env_path = get_env("HAND_LANDMARKER_MODEL_PATH")
    model_path = Path(env_path).expanduser() if env_path else default_model_path()
    if model_path.exists() and model_path.stat().st_size > 1024:
        return model_path

    model_path.parent.mkdir(parents=True, exist_ok=True)
    url = get_env("HAND_LANDMARKER_MODEL_URL") or DEFAULT_MODEL_URL
    logger.info("Downloading hand landmarker model to %s", model_path)
    tmp_path = model_path.with_suffix(model_path.suffix + ".tmp")
    try:
        with urllib.request.urlopen(url) as response, tmp_path.open("wb") as handle:
            shutil.copyfileobj(response, handle)
        tmp_path.replace(model_path)
    except Exception as exc:
        tmp_path.unlink(missing_ok=True)
        raise RuntimeError(
            "HandLandmarker model download failed. "
            "Set GESTURE_COACH_HAND_LANDMARKER_MODEL_PATH to a local .task file, "
            f"or GESTURE_COACH_HAND_LANDMARKER_MODEL_URL to a reachable model URL. Error: {exc}"
        ) from exc
    return model_path


class MediaPipeHandDetector:
    """Thread-safe HandLandmarker wrapper implementing ``detect(image)``.

    One instance can be shared by the recorder's worker threads; calls into the
    model are serialized by an internal lock.
    """

    def __init__(self, *, num_hands: Optional[int] = None, model_path: str | Path | None = None) -> None:
        try:
            from mediapipe.tasks.python.core.base_options import BaseOptions
            from mediapipe.tasks.python.vision import HandLandmarker, HandLandmarkerOptions, RunningMode
        except Exception as exc:  # pragma: no cover - depends on the installed wheel
            raise RuntimeError("MediaPipe Tasks API unavailable; install a mediapipe build with tasks support.") from exc

        path = Path(model_path).expanduser() if model_path else ensure_hand_landmarker_model()
        if num_hands is None:
            try:
                num_hands = int(float(get_env("HAND_NUM_HANDS") or 2))
            except ValueError:
                num_hands = 2
        num_hands = int(np.clip(num_hands, 1, 4))

        options = HandLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(path)),
            running_mode=RunningMode.IMAGE,
            num_hands=num_hands,
            min_hand_detection_confidence=_env_conf("HAND_MIN_DETECTION_CONFIDENCE", 0.5),
            min_hand_presence_confidence=_env_conf("HAND_MIN_PRESENCE_CONFIDENCE", 0.5),
            min_tracking_confidence=_env_conf("HAND_MIN_TRACKING_CONFIDENCE", 0.5),
        )
        self._landmarker = HandLandmarker.create_from_options(options)
        self._lock = threading.Lock()
        self._closed = False

    def detect(self, image: np.ndarray) -> Optional[Dict[str, List[Any]]]:
        """Detect hands in an RGB uint8 image.

        Returns ``{"landmarks": [[{x, y, z}, ...], ...], "handedness": [{label, score}, ...]}``
        or None when no hand was found.
        """
        if image is None or not isinstance(image, np.ndarray):
            raise ValueError("Invalid frame type; expected an RGB numpy.ndarray.")
        if image.ndim != 3 or image.shape[2] != 3 or image.size == 0:
            raise ValueError("Invalid frame shape; expected a non-empty (H, W, 3) RGB image.")

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(image, dtype=np.uint8))
        with self._lock:
            if self._closed:
                raise RuntimeError("MediaPipeHandDetector is closed.")
            results = self._landmarker.detect(mp_image)

        hands = list(getattr(results, "hand_landmarks", None) or [])
        if not hands:
            return None
        handedness: List[Dict[str, Any]] = []
        for categories in list(getattr(results, "handedness", None) or []):
            top = categories[0] if categories else None
            handedness.append(
                {
                    "label": getattr(top, "category_name", None) if top is not None else None,
                    "score": float(getattr(top, "score", 0.0) or 0.0) if top is not None else 0.0,
                }
            )
        landmarks = [
            [{"x": float(lm.x), "y": float(lm.y), "z": float(lm.z or 0.0)} for lm in hand]
            for hand in hands
        ]
        return {"landmarks": landmarks, "handedness": handedness}

    def close(self) -> None:
        """Release MediaPipe model resources."""
        with self._lock:
            if self._closed:
                return
            self._landmarker.close()
            self._closed = True

    def __enter__(self) -> "MediaPipeHandDetector":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


__all__ = ["MediaPipeHandDetector", "ensure_hand_landmarker_model", "DEFAULT_MODEL_URL"]
