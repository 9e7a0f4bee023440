"""Media-encoding backend — rasterize frames, assemble video, mux audio.

The worker only talks to a MediaBackend. FfmpegBackend is the default:
it rasterizes frame markup in-process (Pillow) and shells out to the
ffmpeg binary bundled with imageio-ffmpeg for encoding. Every ffmpeg
call is synchronous and bounded by `timeout` seconds.
"""

import io
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Protocol

import imageio_ffmpeg
from moviepy import VideoFileClip
from PIL import Image

from .frames import FrameMarkup, render_frame

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

DEFAULT_TIMEOUT = 600

# Lines of ffmpeg stderr kept in error messages.
STDERR_TAIL_LINES = 5


class BackendError(RuntimeError):
    """An encoding step failed."""


class RenderTimeoutError(TimeoutError):
    """An encoding step or a whole job ran past its deadline."""


class MediaBackend(Protocol):
    def rasterize(self, markup: FrameMarkup, output: Path) -> Path:
        ...

    def assemble_video(self, frame_pattern: Path, frame_rate: int, output: Path) -> Path:
        ...

    def mux_audio(self, video: Path, audio: Path, volume: float, output: Path) -> Path:
        ...


@lru_cache(maxsize=64)
def _encode_png(markup: FrameMarkup) -> bytes:
    # A scene only has a handful of distinct bounce positions, so most
    # frames repeat an earlier markup exactly.
    buf = io.BytesIO()
    Image.fromarray(render_frame(markup)).save(buf, format="PNG")
    return buf.getvalue()


def _stderr_tail(stderr: bytes | None) -> str:
    if not stderr:
        return ""
    lines = stderr.decode(errors="replace").strip().splitlines()
    return "\n".join(lines[-STDERR_TAIL_LINES:])


class FfmpegBackend:
    """Pillow rasterizer + ffmpeg encoder.

    Args:
        timeout: Seconds allowed per ffmpeg invocation. None = unbounded.
        crf: x264 constant rate factor for the silent video.
        ffmpeg: Path to the ffmpeg binary (default: imageio-ffmpeg's).
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT, crf: int = 20, ffmpeg: str | None = None):
        self.timeout = timeout
        self.crf = crf
        self.ffmpeg = ffmpeg or _FFMPEG

    def _run(self, cmd: list[str], step: str) -> None:
        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            raise RenderTimeoutError(f"{step} timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            detail = _stderr_tail(e.stderr)
            msg = f"{step} failed (ffmpeg exit {e.returncode})"
            raise BackendError(f"{msg}: {detail}" if detail else msg) from e

    def rasterize(self, markup: FrameMarkup, output: Path) -> Path:
        """Render markup to a PNG at `output`."""
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(_encode_png(markup))
        return output

    def assemble_video(self, frame_pattern: Path, frame_rate: int, output: Path) -> Path:
        """Encode an image sequence (printf-style pattern, e.g.
        png/frame_%05d.png) into a silent H.264 mp4."""
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.ffmpeg, "-y",
            "-framerate", str(frame_rate),
            "-i", str(frame_pattern),
            "-c:v", "libx264", "-crf", str(self.crf), "-pix_fmt", "yuv420p",
            "-an",
            str(output),
        ]
        self._run(cmd, "assemble")
        return output

    def mux_audio(self, video: Path, audio: Path, volume: float, output: Path) -> Path:
        """Lay a looping, attenuated audio track under `video`.

        The audio loops indefinitely and the output stops at the shorter
        stream, i.e. the video. Video is stream-copied, not re-encoded.
        """
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.ffmpeg, "-y",
            "-i", str(video),
            "-stream_loop", "-1", "-i", str(audio),
            "-shortest",
            "-filter_complex", f"[1:a]volume={volume}[a]",
            "-map", "0:v", "-map", "[a]",
            "-c:v", "copy", "-c:a", "aac",
            str(output),
        ]
        self._run(cmd, "mux")
        return output


def probe_duration(path: str | Path) -> float:
    """Video duration in seconds (imageio-ffmpeg does not bundle ffprobe)."""
    with VideoFileClip(str(path)) as clip:
        return clip.duration
