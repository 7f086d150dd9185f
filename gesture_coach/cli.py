from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.progress import Progress

from .config import as_dict as config_as_dict, clip_cache, get_config, scoring_options
from .motion import config as motion_config
from .motion.comparison.reporter import generate_score_report
from .motion.comparison.scoring import MotionScorer, ScoreOptions
from .motion.errors import MotionError
from .motion.io import load_clip, save_clip

app = typer.Typer(help="Record hand gestures and grade them against reference clips.")


def _fail(message: str, *, code: int = 1) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.callback()
def _main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
        motion_config.MOTION_LOGGER.setLevel(logging.DEBUG)


def _build_extractor(target: str) -> Any:
    """Create a MediaPipe-backed extractor; heavy imports stay out of scoring."""
    from .motion.landmarks.extractor import HandLandmarkExtractor
    from .motion.landmarks.mediapipe_detector import MediaPipeHandDetector

    return HandLandmarkExtractor(MediaPipeHandDetector(), target=target)


def _close_extractor(extractor: Any) -> None:
    close = getattr(getattr(extractor, "detector", None), "close", None)
    if callable(close):
        close()


@app.command("extract-reference")
def extract_reference(
    video_path: str = typer.Argument(..., help="Path to the reference video."),
    fps: Optional[float] = typer.Option(None, "--fps", help="Sampling rate (defaults to the configured capture fps)."),
    target: Optional[str] = typer.Option(None, "--target", help="Tracking target (only 'hands' is supported)."),
    asset_id: Optional[str] = typer.Option(None, "--asset-id", help="Stable id used as the cache key."),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output clip JSON (defaults to <video>.clip.json)."),
) -> None:
    """Decode a reference video into a landmark clip."""
    from .motion.capture.reference import ReferenceClipLoader, ReferenceKey

    vid_path = Path(video_path)
    if not vid_path.exists():
        _fail(f"Video not found: {vid_path}")

    capture = get_config().capture
    try:
        key = ReferenceKey(
            src=str(vid_path), asset_id=asset_id, target=target or capture.target, fps=fps or capture.fps
        )
    except ValueError as exc:
        _fail(str(exc))
    destination = Path(out) if out else vid_path.with_suffix(".clip.json")

    try:
        extractor = _build_extractor(key.target)
    except (MotionError, RuntimeError) as exc:
        _fail(f"Could not initialise the hand detector: {exc}")

    async def _run() -> Any:
        loader = ReferenceClipLoader(extractor, cache=clip_cache())
        with Progress() as progress:
            task = progress.add_task(f"Extracting {vid_path.name}", total=None)

            def _report(current: int, total: int) -> None:
                progress.update(task, completed=current, total=total)

            return await loader.get_reference_clip(key, _report)

    try:
        clip = asyncio.run(_run())
    except MotionError as exc:
        _fail(f"Extraction failed: {exc}")
    finally:
        _close_extractor(extractor)

    save_clip(clip, destination)
    typer.secho(
        f"Extracted {len(clip.frames)} frames ({clip.duration_ms:.0f} ms) -> {destination}",
        fg=typer.colors.GREEN,
    )


@app.command("record")
def record(
    camera: Optional[int] = typer.Option(None, "--camera", help="Camera index for cv2.VideoCapture."),
    seconds: float = typer.Option(3.0, "--seconds", help="Recording length in seconds."),
    fps: Optional[float] = typer.Option(None, "--fps", help="Capture rate (defaults to the configured capture fps)."),
    out: str = typer.Option("attempt.clip.json", "--out", "-o", help="Output clip JSON."),
) -> None:
    """Record a live attempt from a webcam."""
    from .motion.capture.recorder import LandmarkRecorder
    from .motion.utils.video import stream_camera_frames

    if seconds <= 0:
        _fail("--seconds must be positive.")
    capture = get_config().capture
    camera_id = capture.camera_id if camera is None else camera

    try:
        extractor = _build_extractor(capture.target)
        recorder = LandmarkRecorder(extractor, fps=fps or capture.fps, target=capture.target)
    except (MotionError, RuntimeError, ValueError) as exc:
        _fail(f"Could not initialise recording: {exc}")

    async def _run() -> Any:
        recorder.start()
        try:
            async for frame in stream_camera_frames(camera_id, max_seconds=seconds):
                recorder.on_frame(frame)
                await asyncio.sleep(0)
            await recorder.wait_idle()
        finally:
            clip = recorder.stop()
        return clip

    typer.echo(f"Recording {seconds:.1f}s from camera {camera_id}...")
    try:
        clip = asyncio.run(_run())
    except (MotionError, RuntimeError) as exc:
        _fail(f"Recording failed: {exc}")
    finally:
        _close_extractor(extractor)

    save_clip(clip, out)
    typer.secho(
        f"Recorded {len(clip.frames)} frames ({recorder.dropped_frames} dropped) -> {out}",
        fg=typer.colors.GREEN,
    )


@app.command("score")
def score(
    reference_path: str = typer.Argument(..., help="Reference clip JSON."),
    user_path: str = typer.Argument(..., help="Attempt clip JSON."),
    threshold: Optional[float] = typer.Option(None, "--threshold", help="Pass threshold (0-1)."),
    min_valid_frames: Optional[int] = typer.Option(None, "--min-valid-frames", help="Minimum comparable frames."),
    max_frames: Optional[int] = typer.Option(None, "--max-frames", help="Cap on aligned frames."),
    allow_mirror: Optional[bool] = typer.Option(
        None, "--allow-mirror/--no-allow-mirror", help="Accept the mirrored hand when handedness is unknown."
    ),
    alignment: Optional[str] = typer.Option(None, "--alignment", help="Frame alignment: nearest or dtw."),
    report: Optional[str] = typer.Option(None, "--report", help="Write a per-frame JSON report to this path."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
) -> None:
    """Score an attempt clip against a reference clip."""
    try:
        reference = load_clip(reference_path)
        user = load_clip(user_path)
    except (FileNotFoundError, ValueError) as exc:
        _fail(f"Could not load clips: {exc}")

    base = scoring_options()
    try:
        options = ScoreOptions(
            success_threshold=base.success_threshold if threshold is None else threshold,
            min_valid_frames=base.min_valid_frames if min_valid_frames is None else min_valid_frames,
            max_frames=base.max_frames if max_frames is None else max_frames,
            allow_mirror=base.allow_mirror if allow_mirror is None else allow_mirror,
            alignment=alignment or base.alignment,
        )
    except ValueError as exc:
        _fail(str(exc))

    result = MotionScorer(options).score(reference, user)
    if report:
        generate_score_report(reference, user, options, output_path=report)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        color = typer.colors.GREEN if result.passed else typer.colors.YELLOW
        verdict = "PASS" if result.passed else "FAIL"
        detail = f" ({result.reason})" if result.reason else ""
        typer.secho(f"{verdict}: score {result.score:.3f}{detail}", fg=color)
        for key, value in result.metadata.items():
            if key != "reason":
                typer.echo(f"  {key}: {value}")
    if report:
        typer.echo(f"Report written to {report}")


@app.command("config")
def config_show() -> None:
    """
    Show the effective configuration (scoring, capture, cache).
    """
    config = config_as_dict()
    typer.echo(f"Config source: {config.get('source')}")
    for section in ("scoring", "capture", "cache"):
        values = config.get(section, {})
        typer.echo(f"{section.capitalize()}: " + ", ".join(f"{k}={v}" for k, v in values.items()))
    typer.echo(f"Handedness confidence: {config.get('handedness_confidence')}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
