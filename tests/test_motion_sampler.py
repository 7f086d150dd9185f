from __future__ import annotations

import asyncio

import pytest

from gesture_coach.motion.capture.backpressure import InFlightSlot
from gesture_coach.motion.capture.sampler import FrameSampler
from gesture_coach.motion.models import CameraFrame


def _frame(ts: object) -> CameraFrame:
    return CameraFrame(image=None, timestamp_ms=ts)  # type: ignore[arg-type]


def test_frame_sampler_admits_at_target_rate() -> None:
    admitted: list[float] = []
    sampler = FrameSampler(12, on_admit=lambda frame: admitted.append(frame.timestamp_ms))
    results = [sampler.push(_frame(ts)) for ts in (0.0, 50.0, 84.0, 100.0, 170.0)]
    assert results == [True, False, True, False, True]
    assert admitted == [0.0, 84.0, 170.0]
    assert sampler.last_admitted_ms == 170.0


def test_frame_sampler_drops_frames_without_numeric_timestamp() -> None:
    sampler = FrameSampler(10)
    for ts in (None, float("nan"), float("inf"), True, "100"):
        assert sampler.push(_frame(ts)) is False
    assert sampler.last_admitted_ms is None
    assert sampler.push(object()) is False
    assert sampler.push(_frame(5)) is True


def test_frame_sampler_reset_admits_next_frame() -> None:
    sampler = FrameSampler(10)
    assert sampler.push(_frame(1000.0))
    assert not sampler.push(_frame(1010.0))
    sampler.reset()
    assert sampler.push(_frame(1010.0))


@pytest.mark.parametrize("fps", [0, -5, float("nan")])
def test_frame_sampler_rejects_non_positive_fps(fps: float) -> None:
    with pytest.raises(ValueError):
        FrameSampler(fps)


def test_in_flight_slot_drops_newest_while_busy() -> None:
    async def scenario() -> tuple[list[int], InFlightSlot]:
        slot = InFlightSlot()
        gate = asyncio.Event()
        calls: list[int] = []

        async def job() -> None:
            calls.append(len(calls))
            await gate.wait()

        first = slot.submit(job)
        second = slot.submit(job)
        assert first is not None
        assert second is None
        assert slot.busy
        gate.set()
        await slot.wait_idle()
        assert not slot.busy
        assert slot.submit(job) is not None
        await slot.wait_idle()
        return calls, slot

    calls, slot = asyncio.run(scenario())
    assert calls == [0, 1]
    assert slot.dropped == 1


def test_in_flight_slot_wait_idle_ignores_job_failure() -> None:
    async def scenario() -> InFlightSlot:
        slot = InFlightSlot()

        async def boom() -> None:
            raise RuntimeError("detector crashed")

        task = slot.submit(boom)
        await slot.wait_idle()
        assert task is not None and task.done()
        task.exception()
        return slot

    assert not asyncio.run(scenario()).busy
