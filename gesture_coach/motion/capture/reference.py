"""Offline landmark extraction from reference videos.

A reference video is sampled uniformly at the capture fps, so reference and
user clips share a time base. Each sample is decoded by seeking, which keeps
the work proportional to the number of samples rather than the video's native
frame count. Results are memoized per ``asset|target|fps`` key; concurrent
requests share one extraction and failed extractions are evicted so the next
request retries from scratch.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from gesture_coach.motion.capture.cache import ClipCache
from gesture_coach.motion.config import (
    DEFAULT_CAPTURE_FPS,
    END_OF_CLIP_EPSILON_S,
    HAND_TARGET,
    MOTION_LOGGER as logger,
    SEEK_TOLERANCE_S,
)
from gesture_coach.motion.errors import ClipExtractionFailure
from gesture_coach.motion.landmarks.extractor import HandLandmarkExtractor
from gesture_coach.motion.models import Clip, LandmarkFrame
from gesture_coach.motion.utils.video import OpenCVVideoSource, VideoSource

ProgressCallback = Callable[[int, int], None]
SourceFactory = Callable[[str], VideoSource]


def _format_fps(fps: float) -> str:
    return str(int(fps)) if float(fps).is_integer() else repr(float(fps))


@dataclass(frozen=True)
class ReferenceKey:
    """Identifies a reference clip: which asset, which target, at which rate."""

    src: Optional[str] = None
    asset_id: Optional[str] = None
    target: str = HAND_TARGET
    fps: float = DEFAULT_CAPTURE_FPS

    def __post_init__(self) -> None:
        fps = float(self.fps)
        if not math.isfinite(fps) or fps <= 0:
            raise ValueError(f"fps must be a positive number; received {self.fps!r}.")
        object.__setattr__(self, "fps", fps)

    @property
    def cache_key(self) -> str:
        return f"{self.asset_id or self.src}|{self.target}|{_format_fps(self.fps)}"


def sample_times(duration_seconds: float, fps: float) -> List[float]:
    """Uniform sample times (seconds) covering ``[0, duration)``.

    ``max(1, floor(duration * fps))`` samples; the last one is held just inside
    the end of the clip so it still decodes.
    """
    duration = float(duration_seconds) if math.isfinite(duration_seconds) and duration_seconds > 0 else 0.0
    frame_count = max(1, int(math.floor(duration * fps)))
    if frame_count == 1:
        return [0.0]
    return [
        max(0.0, min(duration - END_OF_CLIP_EPSILON_S, i / (frame_count - 1) * duration))
        for i in range(frame_count)
    ]


class ReferenceClipLoader:
    """Decode reference videos into landmark clips, one extraction per key."""

    def __init__(
        self,
        extractor: HandLandmarkExtractor,
        *,
        cache: Optional[ClipCache] = None,
        source_factory: SourceFactory = OpenCVVideoSource,
    ) -> None:
        self.extractor = extractor
        self.cache = cache if cache is not None else ClipCache()
        self.source_factory = source_factory

    def get_reference_clip(
        self, key: ReferenceKey, on_progress: Optional[ProgressCallback] = None
    ) -> "asyncio.Future[Clip]":
        """Return a future for ``key``, starting an extraction if needed.

        Every caller gets its own shielded view of one shared extraction, so a
        caller that times out or cancels does not stop it for the others.
        Must be called from a running event loop. Raises ConfigurationError
        immediately when the extractor has no usable detector. ``on_progress``
        only applies to the call that starts the extraction.
        """
        self.extractor.ensure_ready()
        cache_key = key.cache_key
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("Reference cache hit: %s", cache_key)
            return asyncio.shield(cached)

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._extract_clip(key, on_progress))
        self.cache.put(cache_key, task)
        task.add_done_callback(lambda done: self._on_settled(cache_key, done))
        return asyncio.shield(task)

    def _on_settled(self, cache_key: str, task: "asyncio.Future[Clip]") -> None:
        if task.cancelled():
            self.cache.evict(cache_key, task)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Reference extraction failed for %s: %s", cache_key, exc)
            self.cache.evict(cache_key, task)

    async def _open_source(self, key: ReferenceKey) -> VideoSource:
        if not key.src:
            raise ClipExtractionFailure("reference video source missing")
        try:
            return await asyncio.to_thread(self.source_factory, key.src)
        except (OSError, RuntimeError, ValueError) as exc:
            raise ClipExtractionFailure(f"Could not load reference video {key.src}: {exc}") from exc

    async def _extract_clip(self, key: ReferenceKey, on_progress: Optional[ProgressCallback]) -> Clip:
        source = await self._open_source(key)
        try:
            duration = float(source.duration_seconds or 0.0)
            if not math.isfinite(duration) or duration < 0:
                duration = 0.0
            times = sample_times(duration, key.fps)
            total = len(times)
            logger.info("Extracting reference %s: %s samples over %.2fs", key.cache_key, total, duration)

            frames: List[LandmarkFrame] = []
            for i, t in enumerate(times):
                if abs(float(source.current_time) - t) >= SEEK_TOLERANCE_S:
                    await asyncio.to_thread(source.seek, t)
                image: Any = await asyncio.to_thread(source.read_frame)
                frame = await self.extractor.extract(image, timestamp_ms=t * 1000.0, target=key.target)
                if frame is not None:
                    frames.append(frame)
                if on_progress is not None:
                    on_progress(i + 1, total)
        finally:
            source.close()

        if not frames:
            raise ClipExtractionFailure("no landmarks detected in reference clip")
        logger.info("Reference %s ready: %s/%s frames with landmarks", key.cache_key, len(frames), total)
        return Clip(frames=tuple(frames), fps=key.fps, duration_ms=duration * 1000.0, target=key.target)


__all__ = ["ReferenceKey", "ReferenceClipLoader", "sample_times"]
