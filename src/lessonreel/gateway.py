"""Submission/status gateway — the caller-facing job operations.

Transport-neutral: web.py exposes these over HTTP, tests call them
directly.
"""

import logging
from pathlib import Path
from uuid import UUID, uuid4

from .jobstore import JobStore
from .models import JobState
from .payload import SubmissionError, validate_payload

logger = logging.getLogger(__name__)

NOT_FOUND = "not_found"


class EnqueueError(SubmissionError):
    """The payload was valid but the store did not accept the job."""


class ArtifactNotReadyError(FileNotFoundError):
    """The job is unknown, not completed, or its video is missing on disk."""


def _check_job_id(job_id) -> str:
    try:
        return str(UUID(str(job_id)))
    except ValueError:
        raise SubmissionError(f"Job id must be a UUID, got '{job_id}'") from None


class Gateway:
    """Create jobs, report their state, and resolve finished videos.

    Args:
        store: The job store shared with the workers.
        renders_dir: Root of the per-job working areas.
        download_prefix: URL path prefix for completed-job download links.
    """

    def __init__(self, store: JobStore, renders_dir: str | Path, download_prefix: str = "/download"):
        self.store = store
        self.renders_dir = Path(renders_dir)
        self.download_prefix = download_prefix.rstrip("/")

    def submit(self, payload: dict, job_id: str | None = None) -> str:
        """Validate and enqueue a payload, returning the job id.

        A caller-supplied id must be a UUID; it names the job's directory
        under renders_dir. Submitting an id that already exists returns
        that id without creating a second job.

        Raises:
            SubmissionError: Invalid payload or job id.
            EnqueueError: The store refused or failed to take the job.
        """
        validate_payload(payload)
        job_id = _check_job_id(job_id) if job_id is not None else str(uuid4())
        try:
            created = self.store.enqueue(job_id, payload)
        except Exception as e:
            raise EnqueueError(f"Could not enqueue job {job_id}: {e}") from e
        if created:
            logger.info("Queued job %s", job_id)
        else:
            logger.info("Job %s already exists, not queued again", job_id)
        return job_id

    def status(self, job_id: str) -> dict:
        """Status document for a job id.

        Returns:
            {"status": "queued" | "active" | "completed" | "failed" | "not_found"},
            plus "downloadUrl" when completed and "error" when failed.
        """
        job = self.store.get(job_id)
        if job is None:
            return {"status": NOT_FOUND}
        doc = {"status": job.state.value}
        if job.state is JobState.COMPLETED:
            doc["downloadUrl"] = f"{self.download_prefix}/{job_id}"
        elif job.state is JobState.FAILED:
            doc["error"] = job.error_reason or "Failed"
        return doc

    def artifact_path(self, job_id: str) -> Path:
        """Path of a completed job's final video.

        Raises:
            ArtifactNotReadyError: Unknown id, job not completed, or file missing.
        """
        job = self.store.get(job_id)
        if job is None or job.state is not JobState.COMPLETED:
            raise ArtifactNotReadyError(f"Job {job_id}: not ready")
        path = Path(job.artifact_ref) if job.artifact_ref else self.renders_dir / job_id / "final.mp4"
        if not path.exists():
            raise ArtifactNotReadyError(f"Job {job_id}: artifact missing at {path}")
        return path
