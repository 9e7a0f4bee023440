"""Job store — queued render jobs and their state.

The store is the single source of truth for job state. Workers and the
gateway receive a store instance; nothing here is a process-wide
singleton.

State machine (monotonic, no regressions):

  queued -> active -> completed
                   -> failed

Enqueueing is keyed by job id: enqueueing an id that already exists is a
no-op, which is what keeps a duplicate submission from producing a
second execution. A redelivered id is also harmless, because the worker
must claim a job (queued -> active) before running it, and only one
claim can succeed.

Two implementations:
  - InMemoryJobStore: thread-safe, for a single process (tests, `serve`
    with in-process worker threads).
  - RedisJobStore: one hash per job plus a list as the queue, shared by
    any number of worker processes.
"""

import dataclasses
import json
import logging
import os
import queue
import threading
from typing import Protocol, runtime_checkable

import redis

from .models import JobState, RenderJob

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    JobState.QUEUED: {JobState.ACTIVE},
    JobState.ACTIVE: {JobState.COMPLETED, JobState.FAILED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
}


class JobNotFoundError(KeyError):
    """No job with the given id."""


class InvalidTransitionError(ValueError):
    """A state change that the state machine does not allow."""


def check_transition(job_id: str, current: JobState, new: JobState) -> None:
    """Raise InvalidTransitionError unless current -> new is allowed."""
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"Job {job_id}: cannot move from '{current.value}' to '{new.value}'"
        )


@runtime_checkable
class JobStore(Protocol):
    def enqueue(self, job_id: str, payload: dict) -> bool:
        """Create and queue a job. Returns False if the id already exists."""
        ...

    def dequeue(self, timeout: float | None = None) -> RenderJob | None:
        """Next queued job, or None if nothing arrives within timeout."""
        ...

    def get(self, job_id: str) -> RenderJob | None:
        ...

    def get_state(self, job_id: str) -> JobState | None:
        ...

    def set_state(
        self,
        job_id: str,
        state: JobState,
        artifact_ref: str | None = None,
        error_reason: str | None = None,
    ) -> RenderJob:
        ...


# ── In-memory store ──────────────────────────────────────────────


class InMemoryJobStore:
    def __init__(self):
        self._jobs: dict[str, RenderJob] = {}
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()

    def enqueue(self, job_id: str, payload: dict) -> bool:
        with self._lock:
            if job_id in self._jobs:
                return False
            self._jobs[job_id] = RenderJob(id=job_id, payload=payload)
        self._queue.put(job_id)
        return True

    def dequeue(self, timeout: float | None = None) -> RenderJob | None:
        try:
            job_id = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        return self.get(job_id)

    def get(self, job_id: str) -> RenderJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def get_state(self, job_id: str) -> JobState | None:
        job = self.get(job_id)
        return job.state if job else None

    def set_state(
        self,
        job_id: str,
        state: JobState,
        artifact_ref: str | None = None,
        error_reason: str | None = None,
    ) -> RenderJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            check_transition(job_id, job.state, state)
            job = dataclasses.replace(
                job,
                state=state,
                artifact_ref=artifact_ref if artifact_ref is not None else job.artifact_ref,
                error_reason=error_reason if error_reason is not None else job.error_reason,
            )
            self._jobs[job_id] = job
            return job


# ── Redis store ──────────────────────────────────────────────────
#
# Keys:
#   {prefix}:job:{id}   hash  state, payload (JSON), artifact_ref, error_reason
#   {prefix}:queue      list  job ids, RPUSH to enqueue, BLPOP to dequeue


REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379")
DEFAULT_KEY_PREFIX = "renders"


class RedisJobStore:
    """Redis-backed store shared across worker processes.

    Args:
        client: A redis.Redis created with decode_responses=True. Built
            from redis_url if omitted.
        redis_url: Connection URL (default: $REDIS_URL).
        key_prefix: Namespace for all keys.
    """

    def __init__(self, client=None, redis_url: str | None = None, key_prefix: str = DEFAULT_KEY_PREFIX):
        if client is None:
            url = redis_url or REDIS_URL
            client = redis.Redis.from_url(url, decode_responses=True)
            logger.info("Using Redis job store at %s (prefix %s)", url, key_prefix)
        self.client = client
        self.key_prefix = key_prefix

    def _job_key(self, job_id: str) -> str:
        return f"{self.key_prefix}:job:{job_id}"

    @property
    def _queue_key(self) -> str:
        return f"{self.key_prefix}:queue"

    @staticmethod
    def _from_hash(job_id: str, data: dict) -> RenderJob:
        return RenderJob(
            id=job_id,
            payload=json.loads(data.get("payload") or "{}"),
            state=JobState(data["state"]),
            artifact_ref=data.get("artifact_ref") or None,
            error_reason=data.get("error_reason") or None,
        )

    def enqueue(self, job_id: str, payload: dict) -> bool:
        key = self._job_key(job_id)
        mapping = {"state": JobState.QUEUED.value, "payload": json.dumps(payload)}
        # Create-if-absent: the hash and the queue entry are written in one
        # MULTI/EXEC, so a failure leaves neither behind.
        with self.client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(key)
                    if pipe.exists(key):
                        return False
                    pipe.multi()
                    pipe.hset(key, mapping=mapping)
                    pipe.rpush(self._queue_key, job_id)
                    pipe.execute()
                    return True
                except redis.WatchError:
                    continue

    def dequeue(self, timeout: float | None = None) -> RenderJob | None:
        # BLPOP treats 0 as "block forever".
        item = self.client.blpop([self._queue_key], timeout=timeout or 0)
        if item is None:
            return None
        _, job_id = item
        job = self.get(job_id)
        if job is None:
            logger.warning("Dequeued unknown job id %s, dropping", job_id)
        return job

    def get(self, job_id: str) -> RenderJob | None:
        data = self.client.hgetall(self._job_key(job_id))
        if not data:
            return None
        return self._from_hash(job_id, data)

    def get_state(self, job_id: str) -> JobState | None:
        job = self.get(job_id)
        return job.state if job else None

    def set_state(
        self,
        job_id: str,
        state: JobState,
        artifact_ref: str | None = None,
        error_reason: str | None = None,
    ) -> RenderJob:
        key = self._job_key(job_id)
        mapping = {"state": state.value}
        if artifact_ref is not None:
            mapping["artifact_ref"] = artifact_ref
        if error_reason is not None:
            mapping["error_reason"] = error_reason

        # Optimistic lock: re-read and retry if another client touched
        # the hash between our check and our write.
        with self.client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(key)
                    data = pipe.hgetall(key)
                    if not data:
                        raise JobNotFoundError(job_id)
                    check_transition(job_id, JobState(data["state"]), state)
                    pipe.multi()
                    pipe.hset(key, mapping=mapping)
                    pipe.execute()
                    break
                except redis.WatchError:
                    continue

        return self._from_hash(job_id, {**data, **mapping})
