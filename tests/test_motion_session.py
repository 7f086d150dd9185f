from __future__ import annotations

import asyncio
from typing import AsyncIterator

import numpy as np
import pytest

from gesture_coach.motion.capture.reference import ReferenceKey
from gesture_coach.motion.landmarks.extractor import HandLandmarkExtractor
from gesture_coach.motion.models import CameraFrame, Clip
from gesture_coach.motion.session import ImitationSession, recording_window_ms

IMAGE = np.zeros((6, 6, 3), dtype=np.uint8)


def _hand() -> list[tuple[float, float, float]]:
    return [(0.3 + 0.015 * i, 0.6 - 0.01 * (i % 5), 0.0) for i in range(21)]


class SteadyDetector:
    def __init__(self) -> None:
        self.calls = 0

    async def detect(self, image: object) -> dict[str, object]:
        self.calls += 1
        return {"landmarks": [_hand()], "handedness": [{"label": "Right", "score": 0.95}]}


class StillVideo:
    def __init__(self, src: str) -> None:
        self.duration_seconds = 1.0
        self.width = 6
        self.height = 6
        self.current_time = 0.0

    def seek(self, seconds: float) -> None:
        self.current_time = seconds

    def read_frame(self) -> np.ndarray:
        return IMAGE

    def close(self) -> None:
        pass


async def _camera(count: int, step_ms: float) -> AsyncIterator[CameraFrame]:
    for i in range(count):
        await asyncio.sleep(0)
        yield CameraFrame(image=IMAGE, timestamp_ms=i * step_ms)


def test_recording_window_has_one_second_floor() -> None:
    assert recording_window_ms(Clip(duration_ms=400.0)) == 1000
    assert recording_window_ms(Clip(duration_ms=2499.6)) == 2500


def test_attempt_records_for_reference_length_and_scores() -> None:
    detector = SteadyDetector()

    async def scenario():
        session = ImitationSession(HandLandmarkExtractor(detector), capture_fps=12, source_factory=StillVideo)
        reference = await session.load_reference(ReferenceKey(src="hello.mp4", asset_id="hello", fps=12))
        result = await session.attempt(reference, _camera(50, 40.0))
        return session, reference, result

    session, reference, result = asyncio.run(scenario())
    assert len(reference.frames) == 12
    assert result.passed is True
    assert result.score >= 0.95
    # 25 fps feed sampled at 12 fps inside a one second window.
    assert session.last_attempt is not None
    assert [f.timestamp_ms for f in session.last_attempt.frames] == [i * 120.0 for i in range(9)]
    assert result.metadata["valid_frames"] == 9
    assert detector.calls == 12 + 9


def test_attempt_with_short_feed_is_insufficient() -> None:
    async def scenario():
        session = ImitationSession(HandLandmarkExtractor(SteadyDetector()), capture_fps=12, source_factory=StillVideo)
        reference = await session.load_reference(ReferenceKey(src="hello.mp4"))
        return await session.attempt(reference, _camera(3, 100.0))

    result = asyncio.run(scenario())
    assert result.passed is False
    assert result.reason == "insufficient_frames"
    assert result.metadata["valid_frames"] == 3


def test_session_shares_reference_cache() -> None:
    async def scenario():
        detector = SteadyDetector()
        session = ImitationSession(HandLandmarkExtractor(detector), source_factory=StillVideo)
        key = ReferenceKey(src="hello.mp4", fps=12)
        first = await session.load_reference(key)
        second = await session.load_reference(key)
        return first, second, detector.calls

    first, second, calls = asyncio.run(scenario())
    assert first is second
    assert calls == 12
    assert first.duration_ms == pytest.approx(1000.0)
