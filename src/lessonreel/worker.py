"""Worker coordinator — run queued render jobs to completion or failure.

One Worker handles one job at a time, synchronously:

  1. Claim the job (queued -> active). A job that is already active or
     finished is skipped, so a redelivered id never runs twice.
  2. Parse the payload into a TimelineRequest (never fails on content).
  3. Compile the scene script and sequence it into frames.
  4. For every frame, write its SVG markup to frames/ and have the
     backend rasterize it to png/, named by zero-padded global index.
  5. Assemble png/ into silent.mp4.
  6. Mux looping background music into final.mp4 if the music asset
     exists, otherwise copy silent.mp4 to final.mp4 unchanged.
  7. Record completed + artifact path, or failed + reason. No retries.

Everything for a job lives under renders_dir/<job id>/ and is touched
only by the worker running that job.

Run several Workers (threads or processes) for parallelism across jobs.
"""

import logging
import shutil
import threading
import time
from pathlib import Path
from uuid import uuid4

from .backend import MediaBackend, RenderTimeoutError
from .config import Settings
from .frames import build_markup, to_svg
from .jobstore import InvalidTransitionError, JobStore
from .models import JobState, RenderJob, TimelineRequest
from .payload import parse_payload
from .sequencer import sequence_frames, total_frames
from .timeline import compile_request

logger = logging.getLogger(__name__)

MIN_INDEX_WIDTH = 5


def frame_index_width(frame_count: int) -> int:
    """Digits needed to zero-pad every frame index so names sort lexically."""
    return max(MIN_INDEX_WIDTH, len(str(max(frame_count - 1, 0))))


def _check_deadline(deadline: float | None, job_id: str, step: str) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise RenderTimeoutError(f"Job {job_id} exceeded its time limit during {step}")


def render_job(
    job_id: str,
    request: TimelineRequest,
    backend: MediaBackend,
    settings: Settings,
) -> Path:
    """Render one job's video into renders_dir/<job_id>/final.mp4.

    Raises:
        RenderTimeoutError: settings.job_timeout exceeded.
        BackendError, OSError: Any encoding or filesystem failure.

    Returns:
        Path to the final mp4.
    """
    deadline = None
    if settings.job_timeout is not None:
        deadline = time.monotonic() + settings.job_timeout

    job_dir = settings.job_dir(job_id)
    frames_dir = job_dir / "frames"
    png_dir = job_dir / "png"
    frames_dir.mkdir(parents=True, exist_ok=True)
    png_dir.mkdir(parents=True, exist_ok=True)

    script = compile_request(request)
    n_frames = total_frames(script, settings.fps)
    width = frame_index_width(n_frames)
    logger.info(
        "Job %s: %d scenes, %d frames at %d fps",
        job_id, len(script), n_frames, settings.fps,
    )

    for idx, frame in enumerate(sequence_frames(script, settings.fps)):
        _check_deadline(deadline, job_id, "rasterize")
        markup = build_markup(script[frame.scene_index], frame.phase, settings.resolution)
        name = f"frame_{idx:0{width}d}"
        (frames_dir / f"{name}.svg").write_text(to_svg(markup), encoding="utf-8")
        backend.rasterize(markup, png_dir / f"{name}.png")

    _check_deadline(deadline, job_id, "assemble")
    silent = backend.assemble_video(
        png_dir / f"frame_%0{width}d.png", settings.fps, job_dir / "silent.mp4",
    )

    final = settings.final_path(job_id)
    music = settings.music_path
    if music is not None and music.exists():
        _check_deadline(deadline, job_id, "mux")
        backend.mux_audio(silent, music, settings.music_volume, final)
    else:
        shutil.copyfile(silent, final)
    return final


def describe_failure(exc: BaseException) -> str:
    """Human-readable failure reason for the job record."""
    return str(exc) or exc.__class__.__name__


class Worker:
    """Pulls jobs from a store and renders them one at a time.

    Args:
        store: Job store to dequeue from and report to.
        backend: Media backend used for every job.
        settings: Output locations, fps, resolution, timeouts, music.
        worker_id: Name used in log lines (auto-generated if omitted).
    """

    def __init__(
        self,
        store: JobStore,
        backend: MediaBackend,
        settings: Settings,
        worker_id: str | None = None,
    ):
        self.store = store
        self.backend = backend
        self.settings = settings
        self.worker_id = worker_id or f"worker-{uuid4().hex[:8]}"
        self.jobs_completed = 0
        self.jobs_failed = 0

    def process(self, job: RenderJob) -> RenderJob | None:
        """Claim and run one job. Returns the terminal job record, or None
        if the job could not be claimed (already taken or finished)."""
        try:
            job = self.store.set_state(job.id, JobState.ACTIVE)
        except InvalidTransitionError as e:
            logger.warning("[%s] Skipping job %s: %s", self.worker_id, job.id, e)
            return None

        logger.info("[%s] Job %s active", self.worker_id, job.id)
        t0 = time.monotonic()
        try:
            request = parse_payload(job.payload)
            final = render_job(job.id, request, self.backend, self.settings)
        except Exception as e:
            logger.exception("[%s] Job %s failed", self.worker_id, job.id)
            self.jobs_failed += 1
            return self.store.set_state(
                job.id, JobState.FAILED, error_reason=describe_failure(e),
            )

        elapsed = time.monotonic() - t0
        logger.info("[%s] Job %s completed in %.1fs: %s", self.worker_id, job.id, elapsed, final)
        self.jobs_completed += 1
        return self.store.set_state(job.id, JobState.COMPLETED, artifact_ref=str(final))

    def run_once(self, timeout: float | None = 1.0) -> RenderJob | None:
        """Dequeue and process at most one job."""
        job = self.store.dequeue(timeout=timeout)
        if job is None:
            return None
        return self.process(job)

    def run_forever(
        self,
        poll_timeout: float = 5.0,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Process jobs until stop_event is set (or forever).

        Store errors (e.g. a dropped Redis connection) are logged and the
        loop waits poll_timeout seconds before polling again.
        """
        logger.info("[%s] Worker running", self.worker_id)
        while stop_event is None or not stop_event.is_set():
            try:
                self.run_once(timeout=poll_timeout)
            except Exception:
                logger.exception("[%s] Polling failed, retrying in %.1fs", self.worker_id, poll_timeout)
                if stop_event is not None:
                    stop_event.wait(poll_timeout)
                else:
                    time.sleep(poll_timeout)
        logger.info(
            "[%s] Worker stopped: %d completed, %d failed",
            self.worker_id, self.jobs_completed, self.jobs_failed,
        )
