"""Live landmark recording.

The recorder sits between a camera feed and the landmark extractor:
- frames are rate-limited by a FrameSampler to the capture fps
- at most one extraction runs at a time; frames arriving meanwhile are dropped
- each successful extraction appends one LandmarkFrame stamped with the
  originating camera frame's timestamp

``on_frame`` is synchronous and must be called from the event loop thread;
extractions run as tasks on that loop.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, List, Optional

from gesture_coach.motion.capture.backpressure import InFlightSlot
from gesture_coach.motion.capture.sampler import FrameSampler
from gesture_coach.motion.config import DEFAULT_CAPTURE_FPS, HAND_TARGET, MOTION_LOGGER as logger
from gesture_coach.motion.errors import ExtractionError
from gesture_coach.motion.landmarks.extractor import HandLandmarkExtractor
from gesture_coach.motion.models import Clip, LandmarkFrame


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"


class LandmarkRecorder:
    def __init__(
        self,
        extractor: HandLandmarkExtractor,
        *,
        fps: float = DEFAULT_CAPTURE_FPS,
        target: str = HAND_TARGET,
    ) -> None:
        self.extractor = extractor
        self.target = target
        self._sampler = FrameSampler(fps)
        self._slot = InFlightSlot()
        self._frames: List[LandmarkFrame] = []
        self._state = RecorderState.IDLE
        self._cycle = 0
        self._started_at: Optional[float] = None
        self.failed_extractions = 0

    @property
    def fps(self) -> float:
        return self._sampler.fps

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state is RecorderState.RECORDING

    @property
    def dropped_frames(self) -> int:
        """Admitted frames dropped because an extraction was still in flight."""
        return self._slot.dropped

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def start(self) -> None:
        """Begin a new recording, discarding any previous buffer."""
        self._frames = []
        self._sampler.reset()
        self._slot.reset_counters()
        self.failed_extractions = 0
        self._cycle += 1
        self._started_at = time.monotonic()
        self._state = RecorderState.RECORDING
        logger.info("Recording started (cycle %s, %.1f fps)", self._cycle, self.fps)

    def on_frame(self, frame: Any) -> bool:
        """Offer a camera frame; return True when an extraction was started.

        Raises ConfigurationError when an extraction would start but no usable
        detector is configured.
        """
        if self._state is not RecorderState.RECORDING:
            return False
        if not self._sampler.push(frame):
            return False
        if not self._slot.busy:
            self.extractor.ensure_ready()
        cycle = self._cycle
        started = self._slot.submit(lambda: self._extract_into(frame, cycle)) is not None
        if not started:
            logger.debug("Extraction busy; dropped frame at %.0f ms", frame.timestamp_ms)
        return started

    async def _extract_into(self, frame: Any, cycle: int) -> None:
        try:
            result = await self.extractor.extract(
                getattr(frame, "image", None), timestamp_ms=frame.timestamp_ms, target=self.target
            )
        except ExtractionError as exc:
            self.failed_extractions += 1
            logger.warning("Landmark extraction failed; recording continues: %s", exc)
            return
        if cycle != self._cycle or self._state is not RecorderState.RECORDING:
            logger.debug("Discarding landmark result from a finished recording")
            return
        if result is not None:
            self._frames.append(result)

    async def wait_idle(self) -> None:
        """Wait until the in-flight extraction, if any, has settled."""
        await self._slot.wait_idle()

    def stop(self) -> Clip:
        """End the recording and return what was captured."""
        self._state = RecorderState.IDLE
        frames = tuple(self._frames)
        if frames:
            duration_ms = max(0.0, frames[-1].timestamp_ms - frames[0].timestamp_ms)
        elif self._started_at is not None:
            duration_ms = max(0.0, (time.monotonic() - self._started_at) * 1000.0)
        else:
            duration_ms = 0.0
        logger.info(
            "Recording stopped: %s frames, %.0f ms, %s dropped, %s failed",
            len(frames),
            duration_ms,
            self.dropped_frames,
            self.failed_extractions,
        )
        return Clip(frames=frames, fps=self.fps, duration_ms=duration_ms, target=self.target)


__all__ = ["LandmarkRecorder", "RecorderState"]
