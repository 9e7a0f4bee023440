"""CLI for a worker process.

Usage:
    REDIS_URL=redis://localhost:6379 lessonreel worker
    lessonreel worker --config settings.yaml --log-level DEBUG

Run one process per concurrent job. A worker against the in-memory
store would never see jobs from another process, so a shared store
(redis) is required here.
"""

import argparse
import logging

from .backend import FfmpegBackend
from .config import load_settings, make_store
from .worker import Worker


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Process render jobs from the job store.",
    )
    parser.add_argument(
        "--config", default=None,
        help="Settings YAML (store, renders_dir, music, timeouts)",
    )
    parser.add_argument(
        "--poll-timeout", type=float, default=5.0,
        help="Seconds to block waiting for a job before polling again",
    )
    parser.add_argument(
        "--log-level", default="INFO",
        help="Logging level (default: INFO)",
    )
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=parsed.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings(parsed.config)
    if settings.store_backend != "redis":
        parser.error("worker needs a shared store: set REDIS_URL or store.backend: redis")

    settings.renders_dir.mkdir(parents=True, exist_ok=True)
    store = make_store(settings)
    backend = FfmpegBackend(timeout=settings.backend_timeout)
    worker = Worker(store, backend, settings)

    print(f"Worker {worker.worker_id} running, renders in {settings.renders_dir}/", flush=True)
    try:
        worker.run_forever(poll_timeout=parsed.poll_timeout)
    except KeyboardInterrupt:
        print(
            f"\nStopped: {worker.jobs_completed} completed, {worker.jobs_failed} failed",
            flush=True,
        )


if __name__ == "__main__":
    main()
