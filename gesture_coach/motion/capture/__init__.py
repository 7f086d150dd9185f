"""Live capture and reference-clip decoding."""

from __future__ import annotations

from .backpressure import InFlightSlot
from .cache import ClipCache
from .recorder import LandmarkRecorder, RecorderState
from .reference import ReferenceClipLoader, ReferenceKey
from .sampler import FrameSampler

__all__ = [
    "FrameSampler",
    "InFlightSlot",
    "ClipCache",
    "LandmarkRecorder",
    "RecorderState",
    "ReferenceClipLoader",
    "ReferenceKey",
]
