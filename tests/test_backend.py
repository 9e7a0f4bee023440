"""Tests for the ffmpeg media backend.

Uses the ffmpeg binary bundled with imageio-ffmpeg and moviepy for
duration probing (imageio_ffmpeg does NOT bundle ffprobe).
"""

import numpy as np
import pytest
from moviepy import VideoFileClip
from PIL import Image

from lessonreel.backend import (
    BackendError,
    FfmpegBackend,
    RenderTimeoutError,
    probe_duration,
)
from lessonreel.common import parse_hex_color
from lessonreel.frames import build_markup
from lessonreel.timeline import INTRO, OUTRO


def _write_frames(backend, png_dir, count, resolution=(160, 90)):
    for i in range(count):
        scene = INTRO if i < count // 2 else OUTRO
        markup = build_markup(scene, i / max(count - 1, 1), resolution)
        backend.rasterize(markup, png_dir / f"frame_{i:05d}.png")


class TestRasterize:
    def test_writes_png_with_background(self, tmp_path):
        backend = FfmpegBackend()
        out = backend.rasterize(build_markup(INTRO, 0.0, (160, 90)), tmp_path / "png" / "f.png")
        assert out.exists()
        with Image.open(out) as img:
            assert img.size == (160, 90)
            pixels = np.array(img.convert("RGB"))
        assert tuple(pixels[0, 0]) == parse_hex_color(INTRO.background)

    def test_identical_markup_gives_identical_bytes(self, tmp_path):
        backend = FfmpegBackend()
        markup = build_markup(INTRO, 0.5, (160, 90))
        a = backend.rasterize(markup, tmp_path / "a.png")
        b = backend.rasterize(markup, tmp_path / "b.png")
        assert a.read_bytes() == b.read_bytes()


class TestAssembleVideo:
    def test_assembles_silent_video(self, tmp_path):
        backend = FfmpegBackend()
        png_dir = tmp_path / "png"
        _write_frames(backend, png_dir, 8)

        out = backend.assemble_video(png_dir / "frame_%05d.png", 4, tmp_path / "silent.mp4")
        assert out.exists()
        with VideoFileClip(str(out)) as clip:
            assert 1.5 < clip.duration < 2.5  # 8 frames at 4fps
            assert clip.audio is None
            assert tuple(clip.size) == (160, 90)

    def test_missing_frames_raise_backend_error(self, tmp_path):
        backend = FfmpegBackend()
        with pytest.raises(BackendError, match="assemble failed"):
            backend.assemble_video(tmp_path / "none_%05d.png", 4, tmp_path / "silent.mp4")

    def test_timeout_raises(self, tmp_path):
        backend = FfmpegBackend(timeout=1e-6)
        png_dir = tmp_path / "png"
        _write_frames(backend, png_dir, 4)
        with pytest.raises(RenderTimeoutError, match="timed out"):
            backend.assemble_video(png_dir / "frame_%05d.png", 4, tmp_path / "silent.mp4")


class TestMuxAudio:
    def test_adds_audio_trimmed_to_video(self, tmp_path, music_asset):
        backend = FfmpegBackend()
        png_dir = tmp_path / "png"
        _write_frames(backend, png_dir, 20)
        silent = backend.assemble_video(png_dir / "frame_%05d.png", 4, tmp_path / "silent.mp4")

        # 5s video, 3s music: the music loops and the output stops with the video.
        final = backend.mux_audio(silent, music_asset, 0.15, tmp_path / "final.mp4")
        assert final.exists()
        with VideoFileClip(str(final)) as clip:
            assert clip.audio is not None
            assert 4.5 < clip.duration < 5.6

    def test_missing_audio_raises_backend_error(self, tmp_path):
        backend = FfmpegBackend()
        png_dir = tmp_path / "png"
        _write_frames(backend, png_dir, 4)
        silent = backend.assemble_video(png_dir / "frame_%05d.png", 4, tmp_path / "silent.mp4")
        with pytest.raises(BackendError, match="mux failed"):
            backend.mux_audio(silent, tmp_path / "missing.mp3", 0.15, tmp_path / "final.mp4")


class TestProbeDuration:
    def test_probe(self, tmp_path):
        backend = FfmpegBackend()
        png_dir = tmp_path / "png"
        _write_frames(backend, png_dir, 6)
        silent = backend.assemble_video(png_dir / "frame_%05d.png", 2, tmp_path / "silent.mp4")
        assert 2.5 < probe_duration(silent) < 3.5
