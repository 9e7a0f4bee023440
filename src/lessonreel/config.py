"""Settings loader — YAML file plus environment overrides.

Settings file schema (every key optional):
  paths:
    root: "/srv/lessonreel"
  renders_dir: "${root}/renders"
  music: "${root}/assets/music/kids_loop_01.mp3"
  music_volume: 0.15
  video:
    fps: 12
    resolution: [1280, 720]
  backend_timeout: 600           # seconds per ffmpeg call, null = unbounded
  job_timeout: 3600              # seconds per job, null = unbounded
  store:
    backend: "memory"            # or "redis"
    redis_url: "redis://localhost:6379"
    key_prefix: "renders"
  port: 10000

${name} variables resolve against `paths`, then the environment.

Environment overrides, applied after the file:
  REDIS_URL               -> store.redis_url, and selects the redis store
  PORT                    -> port
  LESSONREEL_RENDERS_DIR  -> renders_dir
  LESSONREEL_MUSIC        -> music
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .common import resolve_path_vars
from .jobstore import DEFAULT_KEY_PREFIX, InMemoryJobStore, RedisJobStore

VALID_STORE_BACKENDS = {"memory", "redis"}


@dataclass
class Settings:
    renders_dir: Path = Path("renders")
    music_path: Path | None = Path("assets/music/kids_loop_01.mp3")
    music_volume: float = 0.15
    fps: int = 12
    resolution: tuple[int, int] = (1280, 720)
    backend_timeout: float | None = 600
    job_timeout: float | None = 3600
    store_backend: str = "memory"
    redis_url: str | None = None
    key_prefix: str = DEFAULT_KEY_PREFIX
    port: int = 10000

    def job_dir(self, job_id: str) -> Path:
        """Working area of one job: a direct child of renders_dir.

        Raises:
            ValueError: job_id is empty, a path, or a relative reference.
        """
        if job_id in ("", ".", "..") or Path(job_id).name != job_id:
            raise ValueError(f"Job id '{job_id}' does not name a directory under {self.renders_dir}")
        return self.renders_dir / job_id

    def final_path(self, job_id: str) -> Path:
        return self.job_dir(job_id) / "final.mp4"


def _optional_seconds(raw, name: str) -> float | None:
    if raw is None:
        return None
    value = float(raw)
    if value <= 0:
        raise ValueError(f"Settings: '{name}' must be > 0 or null, got {value}")
    return value


def validate_settings(settings: Settings) -> None:
    """Raise ValueError for settings the pipeline cannot run with."""
    if isinstance(settings.fps, bool) or not isinstance(settings.fps, int) or settings.fps <= 0:
        raise ValueError(f"Settings: video.fps must be a positive int, got {settings.fps!r}")
    w, h = settings.resolution
    if w <= 0 or h <= 0 or w % 2 or h % 2:
        raise ValueError(
            f"Settings: video.resolution must be positive and even "
            f"(yuv420p), got {w}x{h}"
        )
    if not 0 <= settings.music_volume <= 1:
        raise ValueError(
            f"Settings: music_volume must be in [0, 1], got {settings.music_volume}"
        )
    if settings.store_backend not in VALID_STORE_BACKENDS:
        raise ValueError(
            f"Settings: unknown store backend '{settings.store_backend}'. "
            f"Valid: {sorted(VALID_STORE_BACKENDS)}"
        )


def load_settings(config_path: str | Path | None = None, env: dict | None = None) -> Settings:
    """Load settings from an optional YAML file and the environment.

    Args:
        config_path: YAML settings file. None = defaults only.
        env: Environment mapping (default: os.environ).

    Raises:
        FileNotFoundError: config_path given but missing.
        ValueError: Invalid values (see validate_settings).
    """
    env = dict(os.environ if env is None else env)
    raw = {}
    if config_path is not None:
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    variables = {**env, **{k: str(v) for k, v in raw.get("paths", {}).items()}}

    def _path(value) -> Path:
        return Path(resolve_path_vars(str(value), variables))

    settings = Settings()

    if "renders_dir" in raw:
        settings.renders_dir = _path(raw["renders_dir"])
    if "music" in raw:
        settings.music_path = _path(raw["music"]) if raw["music"] else None
    if "music_volume" in raw:
        settings.music_volume = float(raw["music_volume"])

    video = raw.get("video", {})
    if "fps" in video:
        settings.fps = video["fps"]
    if "resolution" in video:
        settings.resolution = tuple(int(v) for v in video["resolution"])

    if "backend_timeout" in raw:
        settings.backend_timeout = _optional_seconds(raw["backend_timeout"], "backend_timeout")
    if "job_timeout" in raw:
        settings.job_timeout = _optional_seconds(raw["job_timeout"], "job_timeout")

    store = raw.get("store", {})
    settings.store_backend = store.get("backend", settings.store_backend)
    if store.get("redis_url"):
        settings.redis_url = resolve_path_vars(str(store["redis_url"]), variables)
    settings.key_prefix = store.get("key_prefix", settings.key_prefix)

    if "port" in raw:
        settings.port = int(raw["port"])

    # Environment overrides.
    if env.get("REDIS_URL"):
        settings.redis_url = env["REDIS_URL"]
        settings.store_backend = "redis"
    if env.get("PORT"):
        settings.port = int(env["PORT"])
    if env.get("LESSONREEL_RENDERS_DIR"):
        settings.renders_dir = Path(env["LESSONREEL_RENDERS_DIR"])
    if env.get("LESSONREEL_MUSIC"):
        settings.music_path = Path(env["LESSONREEL_MUSIC"])

    validate_settings(settings)
    return settings


def make_store(settings: Settings):
    """Build the job store selected by settings."""
    if settings.store_backend == "redis":
        return RedisJobStore(redis_url=settings.redis_url, key_prefix=settings.key_prefix)
    return InMemoryJobStore()
