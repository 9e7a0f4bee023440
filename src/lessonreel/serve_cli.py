"""CLI for the HTTP API.

Usage:
    # Single process: API + 2 in-process worker threads, in-memory store
    lessonreel serve --workers 2

    # API only; separate `lessonreel worker` processes do the rendering
    REDIS_URL=redis://localhost:6379 lessonreel serve --workers 0
"""

import argparse
import logging
import threading

from .backend import FfmpegBackend
from .config import load_settings, make_store
from .gateway import Gateway
from .web import create_app
from .worker import Worker


def start_worker_threads(store, settings, count: int, stop_event: threading.Event) -> list[threading.Thread]:
    threads = []
    for i in range(count):
        worker = Worker(
            store, FfmpegBackend(timeout=settings.backend_timeout), settings,
            worker_id=f"thread-{i}",
        )
        t = threading.Thread(
            target=worker.run_forever,
            kwargs={"poll_timeout": 1.0, "stop_event": stop_event},
            name=worker.worker_id,
            daemon=True,
        )
        t.start()
        threads.append(t)
    return threads


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Serve the render API.",
    )
    parser.add_argument(
        "--config", default=None,
        help="Settings YAML (store, renders_dir, music, port)",
    )
    parser.add_argument(
        "--host", default="0.0.0.0",
        help="Bind address (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port", type=int, default=None,
        help="Port (default: settings port / $PORT / 10000)",
    )
    parser.add_argument(
        "--workers", type=int, default=1,
        help="In-process worker threads (default: 1; 0 = API only)",
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
    if settings.store_backend == "memory" and parsed.workers < 1:
        parser.error("the in-memory store needs at least one in-process worker")

    settings.renders_dir.mkdir(parents=True, exist_ok=True)
    store = make_store(settings)
    app = create_app(Gateway(store, settings.renders_dir))

    stop_event = threading.Event()
    threads = start_worker_threads(store, settings, parsed.workers, stop_event)

    port = parsed.port or settings.port
    print(f"Web server on {parsed.host}:{port} ({len(threads)} worker threads)", flush=True)
    try:
        app.run(host=parsed.host, port=port, threaded=True)
    finally:
        stop_event.set()


if __name__ == "__main__":
    main()
