"""Shared test fixtures for lessonreel tests."""

import json
import subprocess
from pathlib import Path

import pytest
import imageio_ffmpeg

from lessonreel.backend import BackendError
from lessonreel.config import Settings
from lessonreel.models import ContentItem

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

WORDS = [
    "Apple", "Ball", "Cat", "Dog", "Egg", "Fish", "Goat", "Hat", "Igloo",
    "Jam", "Kite", "Lion", "Moon", "Nest", "Owl", "Pig", "Queen", "Rain",
    "Sun", "Tree", "Umbrella", "Van", "Whale", "Xylophone", "Yak", "Zebra",
]


def abc_entries(n: int) -> list[dict]:
    """First n alphabet entries as raw payload dicts."""
    return [{"label": w[0], "caption": w} for w in WORDS[:n]]


def abc_payload(n: int = 12, minutes: float = 4, **overrides) -> dict:
    payload = {
        "type": "ABCS",
        "title": "ABCs",
        "durationTargetMinutes": minutes,
        "contentJson": json.dumps(abc_entries(n)),
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def abc_items():
    """All 26 letters as ContentItems."""
    return [ContentItem(label=w[0], caption=w) for w in WORDS]


@pytest.fixture
def fast_settings(tmp_path):
    """Tiny, low-fps settings with no music, rendering under tmp_path."""
    return Settings(
        renders_dir=tmp_path / "renders",
        music_path=None,
        fps=1,
        resolution=(160, 90),
        backend_timeout=120,
        job_timeout=None,
    )


class FakeBackend:
    """In-process MediaBackend that writes placeholder bytes.

    Records every call. Set fail_on to "rasterize", "assemble" or "mux"
    to make that step raise BackendError.
    """

    SILENT_BYTES = b"silent-video-bytes"
    MUXED_BYTES = b"muxed-video-bytes"

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.rasterized: list[Path] = []
        self.assembled: list[tuple] = []
        self.muxed: list[tuple] = []

    def rasterize(self, markup, output):
        if self.fail_on == "rasterize":
            raise BackendError("rasterize exploded")
        Path(output).write_bytes(b"png")
        self.rasterized.append(Path(output))
        return Path(output)

    def assemble_video(self, frame_pattern, frame_rate, output):
        if self.fail_on == "assemble":
            raise BackendError("assemble failed (ffmpeg exit 1): no frames")
        Path(output).write_bytes(self.SILENT_BYTES)
        self.assembled.append((Path(frame_pattern), frame_rate, Path(output)))
        return Path(output)

    def mux_audio(self, video, audio, volume, output):
        if self.fail_on == "mux":
            raise BackendError("mux failed")
        Path(output).write_bytes(self.MUXED_BYTES)
        self.muxed.append((Path(video), Path(audio), volume, Path(output)))
        return Path(output)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def music_asset(tmp_path):
    """Create a 3-second sine-tone AAC file to stand in for background music."""
    out = tmp_path / "music.m4a"
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", "sine=frequency=440:duration=3",
            "-c:a", "aac", "-b:a", "32k",
            str(out),
        ],
        check=True,
        capture_output=True,
    )
    return out
