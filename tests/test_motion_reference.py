from __future__ import annotations

import asyncio
from typing import Any

import numpy as np
import pytest

from gesture_coach.motion.capture.cache import ClipCache
from gesture_coach.motion.capture.reference import ReferenceClipLoader, ReferenceKey, sample_times
from gesture_coach.motion.errors import ClipExtractionFailure, ConfigurationError, ExtractionError
from gesture_coach.motion.landmarks.extractor import HandLandmarkExtractor


def _hand() -> list[tuple[float, float, float]]:
    return [(0.2 + 0.02 * i, 0.8 - 0.01 * i, 0.0) for i in range(21)]


class CountingDetector:
    """Synchronous detector; the loader runs it in a worker thread."""

    def __init__(self, *, result: Any = "hand", raise_error: bool = False) -> None:
        self.calls = 0
        self.result = result
        self.raise_error = raise_error

    def detect(self, image: Any) -> Any:
        self.calls += 1
        if self.raise_error:
            raise RuntimeError("inference failed")
        if self.result == "hand":
            return {"landmarks": [_hand()], "handedness": [{"label": "Left", "score": 0.8}]}
        return self.result


class FakeVideoSource:
    def __init__(self, duration: float = 1.0, width: int = 32, height: int = 24) -> None:
        self.duration_seconds = duration
        self.width = width
        self.height = height
        self.current_time = 0.0
        self.seeks: list[float] = []
        self.reads = 0
        self.closed = False

    def seek(self, seconds: float) -> None:
        self.seeks.append(seconds)
        self.current_time = seconds

    def read_frame(self) -> np.ndarray:
        self.reads += 1
        return np.zeros((self.height, self.width, 3), dtype=np.uint8)

    def close(self) -> None:
        self.closed = True


class SourceFactory:
    def __init__(self, duration: float = 1.0) -> None:
        self.duration = duration
        self.opened: list[FakeVideoSource] = []

    def __call__(self, src: str) -> FakeVideoSource:
        source = FakeVideoSource(self.duration)
        self.opened.append(source)
        return source


def test_reference_key_cache_key_format() -> None:
    assert ReferenceKey(src="clips/hello.mp4", asset_id="sign-42", fps=12).cache_key == "sign-42|hands|12"
    assert ReferenceKey(src="clips/hello.mp4", fps=7.5).cache_key == "clips/hello.mp4|hands|7.5"
    with pytest.raises(ValueError):
        ReferenceKey(src="a.mp4", fps=0)


def test_sample_times_cover_clip_uniformly() -> None:
    times = sample_times(1.0, 12)
    assert len(times) == 12
    assert times[0] == 0.0
    assert times[-1] == pytest.approx(0.999)
    assert times == sorted(times)
    assert sample_times(0.05, 12) == [0.0]
    assert sample_times(float("nan"), 12) == [0.0]


def test_concurrent_requests_share_one_extraction() -> None:
    detector = CountingDetector()
    factory = SourceFactory(duration=1.0)
    progress: list[tuple[int, int]] = []

    async def scenario():
        loader = ReferenceClipLoader(HandLandmarkExtractor(detector), source_factory=factory)
        key = ReferenceKey(src="ref.mp4", fps=12)
        first = loader.get_reference_clip(key, lambda current, total: progress.append((current, total)))
        second = loader.get_reference_clip(key)
        clips = await asyncio.gather(first, second)
        third = await loader.get_reference_clip(key)
        return clips, third, loader

    (clip_a, clip_b), clip_c, loader = asyncio.run(scenario())
    assert clip_a is clip_b is clip_c
    assert detector.calls == 12
    assert len(factory.opened) == 1
    assert factory.opened[0].closed
    assert len(factory.opened[0].seeks) == 11
    assert len(clip_a.frames) == 12
    assert clip_a.fps == 12.0
    assert clip_a.duration_ms == pytest.approx(1000.0)
    assert clip_a.frames[0].timestamp_ms == 0.0
    assert clip_a.frames[-1].timestamp_ms == pytest.approx(999.0)
    assert clip_a.frames[0].handedness.value == "Left"
    assert progress == [(i + 1, 12) for i in range(12)]
    assert "ref.mp4|hands|12" in loader.cache


class SlowDetector:
    def __init__(self) -> None:
        self.calls = 0

    async def detect(self, image: Any) -> Any:
        self.calls += 1
        await asyncio.sleep(0.01)
        return {"landmarks": [_hand()], "handedness": [{"label": "Left", "score": 0.8}]}


def test_caller_timeout_does_not_cancel_shared_extraction() -> None:
    detector = SlowDetector()

    async def scenario():
        loader = ReferenceClipLoader(HandLandmarkExtractor(detector), source_factory=SourceFactory(duration=1.0))
        key = ReferenceKey(src="ref.mp4", fps=12)
        impatient = loader.get_reference_clip(key)
        patient = loader.get_reference_clip(key)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(impatient, 0.02)
        assert key.cache_key in loader.cache
        clip = await patient
        late = await loader.get_reference_clip(key)
        return clip, late

    clip, late = asyncio.run(scenario())
    assert len(clip.frames) == 12
    assert late is clip
    assert detector.calls == 12


def test_failed_extraction_is_evicted_and_retried() -> None:
    detector = CountingDetector(result=None)
    factory = SourceFactory(duration=0.5)

    async def scenario():
        loader = ReferenceClipLoader(HandLandmarkExtractor(detector), source_factory=factory)
        key = ReferenceKey(src="empty.mp4", fps=12)
        with pytest.raises(ClipExtractionFailure, match="no landmarks detected"):
            await loader.get_reference_clip(key)
        await asyncio.sleep(0)
        assert key.cache_key not in loader.cache
        detector.result = "hand"
        return await loader.get_reference_clip(key)

    clip = asyncio.run(scenario())
    assert len(factory.opened) == 2
    assert len(clip.frames) == 6


def test_detector_errors_reject_the_future() -> None:
    async def scenario():
        loader = ReferenceClipLoader(
            HandLandmarkExtractor(CountingDetector(raise_error=True)), source_factory=SourceFactory()
        )
        key = ReferenceKey(src="ref.mp4")
        with pytest.raises(ExtractionError):
            await loader.get_reference_clip(key)
        await asyncio.sleep(0)
        return loader

    assert len(asyncio.run(scenario()).cache) == 0


def test_missing_or_unreadable_source_fails() -> None:
    def broken_factory(src: str) -> FakeVideoSource:
        raise FileNotFoundError(f"Video not found: {src}")

    async def scenario():
        extractor = HandLandmarkExtractor(CountingDetector())
        missing = ReferenceClipLoader(extractor, source_factory=SourceFactory())
        with pytest.raises(ClipExtractionFailure, match="source missing"):
            await missing.get_reference_clip(ReferenceKey(asset_id="sign-1"))

        broken = ReferenceClipLoader(extractor, source_factory=broken_factory)
        with pytest.raises(ClipExtractionFailure, match="Could not load"):
            await broken.get_reference_clip(ReferenceKey(src="gone.mp4"))

    asyncio.run(scenario())


def test_missing_detector_raises_before_any_future() -> None:
    cache = ClipCache()
    loader = ReferenceClipLoader(HandLandmarkExtractor(None), cache=cache, source_factory=SourceFactory())
    with pytest.raises(ConfigurationError):
        loader.get_reference_clip(ReferenceKey(src="ref.mp4"))
    assert len(cache) == 0


def test_clip_cache_lru_and_ttl() -> None:
    now = [0.0]

    async def scenario() -> None:
        loop = asyncio.get_running_loop()
        cache = ClipCache(max_entries=2, ttl_seconds=10.0, clock=lambda: now[0])
        a, b, c = loop.create_future(), loop.create_future(), loop.create_future()
        cache.put("a", a)
        cache.put("b", b)
        assert cache.get("a") is a
        cache.put("c", c)
        assert "b" not in cache
        assert cache.keys() == ["a", "c"]

        a.set_result("clip")
        now[0] = 20.0
        assert cache.get("a") is None
        # Pending entries never expire.
        assert cache.get("c") is c

        other = loop.create_future()
        assert cache.evict("c", other) is False
        assert cache.evict("c", c) is True
        assert len(cache) == 0
        c.cancel()
        other.cancel()

    asyncio.run(scenario())


def test_clip_cache_rejects_invalid_bounds() -> None:
    with pytest.raises(ValueError):
        ClipCache(max_entries=0)
    with pytest.raises(ValueError):
        ClipCache(ttl_seconds=-1)
