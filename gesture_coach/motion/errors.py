"""Exception types raised by the capture and scoring pipeline."""

from __future__ import annotations


class MotionError(RuntimeError):
    """Base class for gesture capture failures."""


class ConfigurationError(MotionError):
    """Raised when the pose-detector capability is missing or malformed."""


class ExtractionError(MotionError):
    """Raised when a single landmark detector call fails."""


class ClipExtractionFailure(MotionError):
    """Raised when a reference clip yields no usable landmark frames."""


__all__ = ["MotionError", "ConfigurationError", "ExtractionError", "ClipExtractionFailure"]
