"""CLI for local planning and rendering — no queue service needed.

Usage:
    # Show the scene script and frame counts only
    lessonreel plan --content abcs.json --minutes 4

    # Render one video into renders/<job id>/final.mp4
    lessonreel render --content abcs.json --minutes 4 --output renders/

    # Small, fast preview
    lessonreel render --content abcs.json --fps 4 --resolution 640x360

The content file is a JSON or YAML list of {label, caption} (or
{letter, word}) entries.
"""

import argparse
import time
from pathlib import Path

from .backend import FfmpegBackend, probe_duration
from .config import load_settings, validate_settings
from .gateway import Gateway
from .jobstore import InMemoryJobStore
from .models import JobState
from .payload import DEFAULT_DURATION_MINUTES, load_content_file, parse_payload
from .sequencer import scene_frame_count, total_frames
from .timeline import compile_request, script_duration
from .worker import Worker


def _parse_resolution(text: str) -> tuple[int, int]:
    try:
        w, h = text.lower().split("x")
        return int(w), int(h)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got '{text}'")


def _add_common_args(parser):
    parser.add_argument(
        "--content", required=True,
        help="JSON or YAML file with the list of content items",
    )
    parser.add_argument(
        "--minutes", type=float, default=DEFAULT_DURATION_MINUTES,
        help=f"Target length in minutes (default: {DEFAULT_DURATION_MINUTES})",
    )
    parser.add_argument(
        "--title", default="",
        help="Title recorded with the job",
    )
    parser.add_argument(
        "--config", default=None,
        help="Settings YAML (fps, resolution, music, timeouts)",
    )
    parser.add_argument(
        "--fps", type=int, default=None,
        help="Override video.fps from settings",
    )


def _build_payload(parsed) -> dict:
    return {
        "type": "ABCS",
        "title": parsed.title,
        "durationTargetMinutes": parsed.minutes,
        "contentJson": load_content_file(parsed.content),
    }


def _load_settings(parsed):
    settings = load_settings(parsed.config)
    if parsed.fps is not None:
        settings.fps = parsed.fps
    if getattr(parsed, "resolution", None) is not None:
        settings.resolution = parsed.resolution
    if getattr(parsed, "output", None) is not None:
        settings.renders_dir = Path(parsed.output)
    # Local rendering never needs a queue service.
    settings.store_backend = "memory"
    validate_settings(settings)
    return settings


def print_plan(script, fps: int, minutes: float) -> None:
    n_frames = total_frames(script, fps)
    print(
        f"Timeline: {len(script)} scenes, {script_duration(script):.1f}s "
        f"(target {minutes * 60:.0f}s), {n_frames} frames at {fps}fps"
    )
    for i, scene in enumerate(script):
        frames = scene_frame_count(scene, fps)
        print(
            f"  {i:2d}: {scene.duration_seconds:5.1f}s  {frames:5d}f  "
            f"{scene.background}  {scene.title} / {scene.subtitle}"
        )


def plan_main(args=None):
    parser = argparse.ArgumentParser(
        description="Compile content into a scene script and print it.",
    )
    _add_common_args(parser)
    parsed = parser.parse_args(args)

    settings = _load_settings(parsed)
    request = parse_payload(_build_payload(parsed))
    print_plan(compile_request(request), settings.fps, request.duration_target_minutes)


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render one video locally from a content file.",
    )
    _add_common_args(parser)
    parser.add_argument(
        "--output", default=None,
        help="Renders directory (default: settings renders_dir)",
    )
    parser.add_argument(
        "--resolution", type=_parse_resolution, default=None,
        help="Override video.resolution, e.g. 640x360",
    )
    parser.add_argument(
        "--job-id", default=None,
        help="Job id (a UUID) naming the output subdirectory (default: random UUID)",
    )
    parsed = parser.parse_args(args)

    settings = _load_settings(parsed)
    payload = _build_payload(parsed)
    print_plan(
        compile_request(parse_payload(payload)), settings.fps,
        payload["durationTargetMinutes"],
    )

    store = InMemoryJobStore()
    gateway = Gateway(store, settings.renders_dir)
    backend = FfmpegBackend(timeout=settings.backend_timeout)
    worker = Worker(store, backend, settings, worker_id="local")

    job_id = gateway.submit(payload, job_id=parsed.job_id)
    w, h = settings.resolution
    print(f"\nRendering job {job_id} at {w}x{h}, {settings.fps}fps")
    t0 = time.monotonic()
    job = worker.run_once(timeout=0)
    elapsed = time.monotonic() - t0

    if job is None or job.state is not JobState.COMPLETED:
        reason = job.error_reason if job else "job was not processed"
        raise SystemExit(f"Render failed: {reason}")

    duration = probe_duration(job.artifact_ref)
    print(f"\nDone: {job.artifact_ref} ({duration:.1f}s video, {elapsed:.1f}s wall)")


if __name__ == "__main__":
    main()
