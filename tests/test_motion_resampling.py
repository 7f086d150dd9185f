from __future__ import annotations

from gesture_coach.motion.comparison.resampling import resample, source_indices
from gesture_coach.motion.models import Clip, LandmarkFrame


def _clip(count: int) -> Clip:
    frames = tuple(LandmarkFrame(points=(), timestamp_ms=float(i * 100)) for i in range(count))
    return Clip(frames=frames, fps=10.0, duration_ms=float(max(0, count - 1) * 100), target="hands")


def test_resample_returns_exact_lengths() -> None:
    clip = _clip(7)
    for n in range(1, 8):
        assert len(resample(clip, n).frames) == n


def test_resample_single_frame_keeps_first() -> None:
    clip = _clip(5)
    out = resample(clip, 1)
    assert out.frames == (clip.frames[0],)


def test_resample_empty_or_non_positive_keeps_metadata() -> None:
    empty = resample(_clip(0), 4)
    assert empty.frames == ()

    clip = _clip(5)
    none = resample(clip, 0)
    assert none.frames == ()
    assert none.fps == clip.fps
    assert none.duration_ms == clip.duration_ms
    assert none.target == clip.target


def test_source_indices_round_half_up() -> None:
    assert source_indices(5, 3) == [0, 2, 4]
    # 2.5 rounds up to 3 rather than to the even neighbour.
    assert source_indices(6, 3) == [0, 3, 5]
    assert source_indices(2, 4) == [0, 0, 1, 1]


def test_resample_keeps_endpoints_and_order() -> None:
    clip = _clip(10)
    out = resample(clip, 4)
    stamps = [f.timestamp_ms for f in out.frames]
    assert stamps[0] == 0.0
    assert stamps[-1] == 900.0
    assert stamps == sorted(stamps)
