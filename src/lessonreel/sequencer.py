"""Frame sequencer — scene script + frame rate to frame descriptors.

Each scene contributes round(duration * fps) frames. Within a scene the
phase runs from 0.0 on the first frame to exactly 1.0 on the last, so a
per-scene animation starts at rest and closes its cycle. A scene with a
single frame (or none) sits at phase 0.

Frames come out strictly in (scene index, local frame index) order.
Downstream steps name files by global frame index, so this order is the
order of the final video.
"""

from typing import Iterator

from .models import FrameDescriptor, SceneDescriptor


def _check_frame_rate(frame_rate: int) -> None:
    if isinstance(frame_rate, bool) or not isinstance(frame_rate, int) or frame_rate <= 0:
        raise ValueError(f"frame_rate must be a positive int, got {frame_rate!r}")


def scene_frame_count(scene: SceneDescriptor, frame_rate: int) -> int:
    _check_frame_rate(frame_rate)
    return round(scene.duration_seconds * frame_rate)


def total_frames(script, frame_rate: int) -> int:
    return sum(scene_frame_count(scene, frame_rate) for scene in script)


def sequence_frames(script, frame_rate: int) -> Iterator[FrameDescriptor]:
    """Yield one FrameDescriptor per output frame, lazily, in order.

    Raises:
        ValueError: frame_rate is not a positive int (raised on first
            iteration, since this is a generator).
    """
    _check_frame_rate(frame_rate)
    for scene_index, scene in enumerate(script):
        n = scene_frame_count(scene, frame_rate)
        for f in range(n):
            phase = 0.0 if n <= 1 else f / (n - 1)
            yield FrameDescriptor(scene_index=scene_index, phase=phase)
