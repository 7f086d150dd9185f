"""Video and camera helpers built on OpenCV.

- ``VideoSource``: the seekable-video capability used by reference decoding.
- ``OpenCVVideoSource``: a ``cv2.VideoCapture``-backed implementation.
- ``iter_camera_frames`` / ``stream_camera_frames``: live webcam frames as
  ``CameraFrame`` values with millisecond timestamps.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import AsyncIterator, Iterator, Optional, Protocol, Tuple, Union, runtime_checkable

import cv2
import numpy as np

from gesture_coach.motion.config import DEFAULT_RASTER_SIZE, MOTION_LOGGER as logger
from gesture_coach.motion.models import CameraFrame


@runtime_checkable
class VideoSource(Protocol):
    """A seekable video asset; times are in seconds, frames are RGB arrays."""

    @property
    def duration_seconds(self) -> float: ...

    @property
    def width(self) -> int: ...

    @property
    def height(self) -> int: ...

    @property
    def current_time(self) -> float: ...

    def seek(self, seconds: float) -> None: ...

    def read_frame(self) -> Optional[np.ndarray]: ...

    def close(self) -> None: ...


class OpenCVVideoSource:
    """Open a video file and expose it as a ``VideoSource``.

    Opening validates the file the way reference decoding needs it: metadata
    must be readable and the first frame must decode. Raises FileNotFoundError,
    RuntimeError or ValueError with a descriptive message otherwise.
    """

    def __init__(self, video_path: Union[str, Path]) -> None:
        path = Path(video_path)
        if not path.exists():
            raise FileNotFoundError(f"Video not found: {path}")
        if not path.is_file():
            raise ValueError(f"Expected a video file, but got a directory: {path}")

        cap = cv2.VideoCapture(str(path))
        if not cap.isOpened():
            raise RuntimeError(
                f"Could not open video {path}. The file may be corrupted or use an unsupported codec."
            )

        fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
        total_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if not np.isfinite(fps) or fps <= 0 or total_frames <= 0:
            cap.release()
            raise ValueError(
                f"Invalid metadata for {path}. The file may be corrupted or unreadable (fps={fps}, frames={total_frames})."
            )

        ret, frame = cap.read()
        if not ret or frame is None or frame.size == 0:
            cap.release()
            raise ValueError(
                f"Failed to read the first frame from {path}. The file may be corrupted or use an unsupported codec."
            )
        cap.set(cv2.CAP_PROP_POS_FRAMES, 0)

        self.path = path
        self.fps = fps
        self.codec = _decode_fourcc(int(cap.get(cv2.CAP_PROP_FOURCC) or 0))
        self._cap = cap
        self._duration = total_frames / fps
        self._width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        self._height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        self._current = 0.0
        logger.debug(
            "Opened %s (%sx%s, %.2f fps, %.2fs, codec=%s)",
            path.name,
            self._width,
            self._height,
            fps,
            self._duration,
            self.codec,
        )

    @property
    def duration_seconds(self) -> float:
        return self._duration

    @property
    def width(self) -> int:
        return self._width or DEFAULT_RASTER_SIZE[0]

    @property
    def height(self) -> int:
        return self._height or DEFAULT_RASTER_SIZE[1]

    @property
    def current_time(self) -> float:
        return self._current

    def seek(self, seconds: float) -> None:
        self._cap.set(cv2.CAP_PROP_POS_MSEC, float(seconds) * 1000.0)
        self._current = float(seconds)

    def read_frame(self) -> Optional[np.ndarray]:
        """Decode the frame at the current position as RGB, or None at the end."""
        ret, frame = self._cap.read()
        if not ret or frame is None:
            return None
        pos_msec = float(self._cap.get(cv2.CAP_PROP_POS_MSEC) or 0.0)
        if np.isfinite(pos_msec) and pos_msec > 0:
            self._current = pos_msec / 1000.0
        rgb = _convert_frame_color(frame, "RGB")
        return _resize_frame(rgb, (self.width, self.height))

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()

    def __enter__(self) -> "OpenCVVideoSource":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _open_camera(camera_id: int, resolution: Optional[Tuple[int, int]]) -> "cv2.VideoCapture":
    cap = cv2.VideoCapture(camera_id)
    if resolution:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, resolution[0])
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, resolution[1])
    if not cap.isOpened():
        raise RuntimeError(f"Could not open camera {camera_id}.")
    return cap


def iter_camera_frames(
    camera_id: int = 0,
    *,
    max_seconds: Optional[float] = None,
    resolution: Optional[Tuple[int, int]] = DEFAULT_RASTER_SIZE,
) -> Iterator[CameraFrame]:
    """Yield RGB webcam frames stamped with milliseconds since the first frame.

    Stops when the camera stops delivering frames or after ``max_seconds``.
    """
    cap = _open_camera(camera_id, resolution)
    start = time.monotonic()
    try:
        while True:
            ret, frame = cap.read()
            if not ret or frame is None:
                logger.warning("Camera %s stopped delivering frames", camera_id)
                return
            elapsed_ms = (time.monotonic() - start) * 1000.0
            yield CameraFrame(image=_convert_frame_color(frame, "RGB"), timestamp_ms=elapsed_ms)
            if max_seconds is not None and elapsed_ms >= max_seconds * 1000.0:
                return
    finally:
        cap.release()


async def stream_camera_frames(
    camera_id: int = 0,
    *,
    max_seconds: Optional[float] = None,
    resolution: Optional[Tuple[int, int]] = DEFAULT_RASTER_SIZE,
) -> AsyncIterator[CameraFrame]:
    """Async variant of ``iter_camera_frames``; blocking reads run in a thread."""
    frames = iter_camera_frames(camera_id, max_seconds=max_seconds, resolution=resolution)
    sentinel = object()
    try:
        while True:
            item = await asyncio.to_thread(next, frames, sentinel)
            if item is sentinel:
                return
            yield item  # type: ignore[misc]
    finally:
        frames.close()


def _convert_frame_color(frame: np.ndarray, output_format: str) -> np.ndarray:
    fmt = (output_format or "BGR").upper()
    if fmt == "BGR":
        return frame
    if fmt == "RGB":
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    raise ValueError(f"Unsupported output_format '{output_format}'. Use BGR or RGB.")


def _resize_frame(frame: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    width, height = size
    if frame.shape[1] == width and frame.shape[0] == height:
        return frame
    return cv2.resize(frame, (width, height))


def _decode_fourcc(cc: int) -> str:
    return "".join([chr((cc >> 8 * i) & 0xFF) for i in range(4)])


__all__ = ["VideoSource", "OpenCVVideoSource", "iter_camera_frames", "stream_camera_frames"]
