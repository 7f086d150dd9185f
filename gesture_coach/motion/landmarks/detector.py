"""The pose-detector capability consumed by capture and reference decoding."""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class PoseDetector(Protocol):
    """Model adapter interface.

    ``detect`` takes an RGB image (H, W, 3 uint8) and returns a mapping with
    ``landmarks`` (one point list per detected hand) and ``handedness`` (one
    ``{label, score}`` entry per hand), or None when nothing was found. It may
    be a plain function or a coroutine function, and may raise.
    """

    def detect(self, image: Any) -> Optional[Any]: ...


__all__ = ["PoseDetector"]
