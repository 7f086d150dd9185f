"""Single-hand landmark extraction on top of an injected pose detector.

Detectors report every hand they see. Capture and scoring work with exactly one
hand per frame: the one whose handedness classification is most confident.
Result shapes from MediaPipe Tasks (``hand_landmarks``/``handedness`` with
``Category`` entries), MediaPipe Solutions (``multi_hand_landmarks``/
``multi_handedness``) and plain dictionaries are all accepted.
"""

from __future__ import annotations

import asyncio
import inspect
import math
import time
from typing import Any, Optional, Sequence

from gesture_coach.motion.config import HAND_TARGET, MOTION_LOGGER as logger, TARGET_POINT_COUNTS
from gesture_coach.motion.errors import ConfigurationError, ExtractionError
from gesture_coach.motion.landmarks.detector import PoseDetector
from gesture_coach.motion.models import Handedness, LandmarkFrame

_LANDMARK_KEYS = ("landmarks", "hand_landmarks", "multi_hand_landmarks", "hands")
_HANDEDNESS_KEYS = ("handedness", "handednesses", "multi_handedness")


def _field(obj: Any, names: Sequence[str]) -> Any:
    for name in names:
        if isinstance(obj, dict):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value:
            return value
    return None


def _unwrap_entry(entry: Any) -> Any:
    # Tasks results nest categories per hand; Solutions wrap them in `classification`.
    classification = getattr(entry, "classification", None)
    if classification:
        entry = classification
    if isinstance(entry, (list, tuple)):
        return entry[0] if entry else None
    return entry


def _entry_score(entry: Any) -> float:
    entry = _unwrap_entry(entry)
    if entry is None:
        return 0.0
    raw = _field(entry, ("score", "confidence"))
    try:
        value = float(raw) if raw is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _entry_label(entry: Any) -> Handedness:
    entry = _unwrap_entry(entry)
    if entry is None:
        return Handedness.UNKNOWN
    return Handedness.from_label(_field(entry, ("category_name", "label")))


def pick_best_hand_index(handednesses: Sequence[Any]) -> int:
    """Index of the most confident hand; the first wins ties, 0 when unknown."""
    best_idx = 0
    best_score = -1.0
    for idx, entry in enumerate(handednesses or []):
        score = _entry_score(entry)
        if score > best_score:
            best_score = score
            best_idx = idx
    return best_idx


def parse_detection(
    result: Any, *, timestamp_ms: float, point_count: Optional[int] = None
) -> Optional[LandmarkFrame]:
    """Reduce a raw detector result to a single-hand LandmarkFrame, or None.

    With ``point_count`` set, a hand with a different number of points raises
    ExtractionError, as do points that cannot be read as coordinates.
    """
    if not result:
        return None
    hands = _field(result, _LANDMARK_KEYS)
    if not isinstance(hands, (list, tuple)) or not hands:
        return None
    handednesses = _field(result, _HANDEDNESS_KEYS) or []
    if not isinstance(handednesses, (list, tuple)):
        handednesses = []

    idx = pick_best_hand_index(handednesses)
    points = hands[idx] if idx < len(hands) and hands[idx] else hands[0]
    points = getattr(points, "landmark", points)
    if not points:
        return None
    if point_count is not None and len(points) != point_count:
        raise ExtractionError(
            f"Detector returned {len(points)} points at {timestamp_ms:.0f} ms; expected {point_count}."
        )

    entry = handednesses[idx] if idx < len(handednesses) else None
    confidence = min(1.0, max(0.0, _entry_score(entry)))
    try:
        return LandmarkFrame(
            points=tuple(points),
            handedness=_entry_label(entry),
            confidence=confidence,
            timestamp_ms=timestamp_ms,
        )
    except (TypeError, ValueError, KeyError, IndexError) as exc:
        raise ExtractionError(f"Malformed landmarks at {timestamp_ms:.0f} ms: {exc}") from exc


class HandLandmarkExtractor:
    """Calls the detector for one image and keeps a single hand.

    Synchronous detectors run in a worker thread so the event loop that
    delivers camera frames is never blocked; coroutine detectors are awaited.
    """

    def __init__(self, detector: Optional[PoseDetector], *, target: str = HAND_TARGET) -> None:
        self.detector = detector
        self.target = target

    def ensure_ready(self) -> None:
        """Raise ConfigurationError when the detector capability is unusable."""
        if self.detector is None:
            raise ConfigurationError("Hand landmark detector not configured; inject a PoseDetector.")
        if not callable(getattr(self.detector, "detect", None)):
            raise ConfigurationError(
                f"Hand landmark detector {type(self.detector).__name__} has no callable detect(image)."
            )

    async def _call_detector(self, image: Any) -> Any:
        detect = self.detector.detect  # type: ignore[union-attr]
        if inspect.iscoroutinefunction(detect):
            return await detect(image)
        result = await asyncio.to_thread(detect, image)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def extract(
        self, image: Any, *, timestamp_ms: Optional[float] = None, target: Optional[str] = None
    ) -> Optional[LandmarkFrame]:
        """Detect landmarks in ``image``.

        Returns None for unsupported targets, missing images, and empty results.
        Raises ExtractionError when the detector fails or its output is malformed.
        """
        self.ensure_ready()
        target = target or self.target
        if target != HAND_TARGET:
            return None
        if image is None:
            return None

        ts = float(timestamp_ms) if timestamp_ms is not None else time.time() * 1000.0
        try:
            result = await self._call_detector(image)
        except Exception as exc:
            raise ExtractionError(f"Hand landmark detection failed at {ts:.0f} ms: {exc}") from exc
        frame = parse_detection(result, timestamp_ms=ts, point_count=TARGET_POINT_COUNTS.get(target))
        if frame is None:
            logger.debug("No hand detected at %.0f ms", ts)
        return frame


__all__ = ["HandLandmarkExtractor", "parse_detection", "pick_best_hand_index"]
