from __future__ import annotations

import os

PREFIX = "GESTURE_COACH_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    Every setting is read from ``GESTURE_COACH_<name>`` so deployments can tune
    capture and scoring without touching code.
    """
    value = os.getenv(f"{PREFIX}{name}")
    if value is not None:
        return value
    return default
