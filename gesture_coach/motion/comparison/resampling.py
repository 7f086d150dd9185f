"""Uniform nearest-index resampling of landmark clips."""

from __future__ import annotations

import math

from gesture_coach.motion.models import Clip


def source_indices(source_length: int, frame_count: int) -> list[int]:
    """Indices into a sequence of ``source_length`` for ``frame_count`` outputs.

    Projects each output index linearly onto the source and rounds half up, so
    the first and last source frames are always selected.
    """
    if frame_count <= 0 or source_length <= 0:
        return []
    if frame_count == 1:
        return [0]
    span = source_length - 1
    return [int(math.floor(i / (frame_count - 1) * span + 0.5)) for i in range(frame_count)]


def resample(clip: Clip, frame_count: int) -> Clip:
    """Return a copy of ``clip`` holding exactly ``frame_count`` frames.

    An empty clip or a non-positive ``frame_count`` yields a clip with the same
    metadata and no frames. Frames may repeat when upsampling; order is kept.
    """
    if frame_count <= 0 or clip.is_empty:
        return clip.with_frames(())
    return clip.with_frames(clip.frames[i] for i in source_indices(len(clip.frames), int(frame_count)))


__all__ = ["resample", "source_indices"]
