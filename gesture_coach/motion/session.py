"""One imitation exercise: load a reference, record an attempt, score it.

The recording window matches the reference clip's length (at least one
second), measured on the camera frames' own timestamps so that a slow or
replayed feed is graded on the same time base as the reference.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterable, Optional

from gesture_coach.motion.capture.cache import ClipCache
from gesture_coach.motion.capture.recorder import LandmarkRecorder
from gesture_coach.motion.capture.reference import ProgressCallback, ReferenceClipLoader, ReferenceKey, SourceFactory
from gesture_coach.motion.comparison.scoring import MotionScorer, ScoreOptions
from gesture_coach.motion.config import DEFAULT_CAPTURE_FPS, HAND_TARGET, MOTION_LOGGER as logger
from gesture_coach.motion.landmarks.extractor import HandLandmarkExtractor
from gesture_coach.motion.models import CameraFrame, Clip, ScoreResult
from gesture_coach.motion.utils.video import OpenCVVideoSource

MIN_RECORDING_WINDOW_MS = 1000


def recording_window_ms(reference: Clip) -> int:
    return max(MIN_RECORDING_WINDOW_MS, int(round(reference.duration_ms)))


class ImitationSession:
    """Compose the reference loader, the live recorder, and the scorer.

    Mirroring is off by default; the attempt must use the same hand as the
    reference. Without an explicit ``cache`` the configured ``[cache]`` bounds
    apply.
    """

    def __init__(
        self,
        extractor: HandLandmarkExtractor,
        *,
        options: Optional[ScoreOptions] = None,
        capture_fps: float = DEFAULT_CAPTURE_FPS,
        cache: Optional[ClipCache] = None,
        target: str = HAND_TARGET,
        source_factory: SourceFactory = OpenCVVideoSource,
    ) -> None:
        self.extractor = extractor
        self.capture_fps = float(capture_fps)
        self.target = target
        if cache is None:
            from gesture_coach.config import clip_cache

            cache = clip_cache()
        self.loader = ReferenceClipLoader(extractor, cache=cache, source_factory=source_factory)
        self.recorder = LandmarkRecorder(extractor, fps=self.capture_fps, target=target)
        self.scorer = MotionScorer(options or ScoreOptions(allow_mirror=False))
        self.last_attempt: Optional[Clip] = None

    async def load_reference(
        self, key: ReferenceKey, on_progress: Optional[ProgressCallback] = None
    ) -> Clip:
        return await self.loader.get_reference_clip(key, on_progress)

    async def record(self, frames: AsyncIterable[CameraFrame], window_ms: float) -> Clip:
        """Record ``frames`` for ``window_ms`` of frame time, or until they run out."""
        self.recorder.start()
        first_ts: Optional[float] = None
        try:
            async for frame in frames:
                ts = frame.timestamp_ms
                if ts is not None:
                    if first_ts is None:
                        first_ts = ts
                    elif ts - first_ts >= window_ms:
                        break
                self.recorder.on_frame(frame)
                # Let a just-started extraction run before the next frame arrives.
                await asyncio.sleep(0)
            await self.recorder.wait_idle()
        finally:
            clip = self.recorder.stop()
        return clip

    async def attempt(self, reference: Clip, frames: AsyncIterable[CameraFrame]) -> ScoreResult:
        window = recording_window_ms(reference)
        logger.info("Recording attempt for %s ms", window)
        user_clip = await self.record(frames, window)
        self.last_attempt = user_clip
        return self.scorer.score(reference, user_clip)


__all__ = ["ImitationSession", "recording_window_ms", "MIN_RECORDING_WINDOW_MS"]
