"""Frame markup — what one video frame looks like, independent of encoder.

A frame is a solid background plus two centered text layers (the scene
title and subtitle), each placed by percentage of the frame height.
Coordinates follow SVG text conventions: x is the horizontal center of
the text, y is its baseline.

The title bounces gently over the course of its scene:

  bounce  = round(sin(phase * pi) * 10)
  title_y = 36 + bounce * 0.04   (percent of height)

so it is at rest on the first and last frame of every scene and peaks
in the middle. The subtitle stays at 60%. Font sizes scale with the
frame height and shrink further if the text would not fit the width.

Markup can be serialized to SVG (the persisted per-frame record) or
rasterized in-process to an RGB numpy frame.
"""

import math
from dataclasses import dataclass
from functools import lru_cache
from xml.sax.saxutils import escape

import numpy as np
from PIL import Image, ImageDraw

from .common import load_font, parse_hex_color, text_size
from .models import SceneDescriptor


# Pixel sizes are defined at REF_H and scaled with the output height.
REF_H = 720

TITLE_FONT_SIZE = 180
SUBTITLE_FONT_SIZE = 64

TITLE_BASE_Y_PCT = 36
TITLE_BOUNCE_PX = 10
TITLE_BOUNCE_TO_PCT = 0.04
SUBTITLE_Y_PCT = 60

MIN_FONT_SIZE = 8

# Text may span at most this fraction of the frame width.
MAX_TEXT_WIDTH_FRAC = 0.9

TITLE_COLOR = "#1f2937"
SUBTITLE_COLOR = "#374151"


@dataclass(frozen=True)
class TextLayer:
    text: str
    x_pct: float
    y_pct: float
    font_size: int
    color: str
    font_family: str
    font_weight: int


@dataclass(frozen=True)
class FrameMarkup:
    width: int
    height: int
    background: str
    layers: tuple[TextLayer, ...]


def _scale(size: int, height: int) -> int:
    return max(1, round(size * height / REF_H))


@lru_cache(maxsize=256)
def fit_font_size(text: str, size: int, max_width: int) -> int:
    """Largest size <= `size` at which text fits in max_width pixels.

    Shrinks in 10% steps, never below MIN_FONT_SIZE.
    """
    while size > MIN_FONT_SIZE and text_size(text, load_font(size))[0] > max_width:
        size = max(MIN_FONT_SIZE, int(size * 0.9))
    return size


def title_y_pct(phase: float) -> float:
    """Title baseline position for the given scene phase."""
    bounce = round(math.sin(phase * math.pi) * TITLE_BOUNCE_PX)
    return TITLE_BASE_Y_PCT + bounce * TITLE_BOUNCE_TO_PCT


def build_markup(
    scene: SceneDescriptor,
    phase: float,
    resolution: tuple[int, int],
) -> FrameMarkup:
    """Describe the frame at `phase` within `scene`."""
    w, h = resolution
    max_width = int(w * MAX_TEXT_WIDTH_FRAC)
    layers = [
        TextLayer(
            text=scene.title,
            x_pct=50,
            y_pct=title_y_pct(phase),
            font_size=fit_font_size(scene.title, _scale(TITLE_FONT_SIZE, h), max_width),
            color=TITLE_COLOR,
            font_family="Arial Rounded MT Bold, Arial, sans-serif",
            font_weight=900,
        ),
    ]
    if scene.subtitle:
        layers.append(TextLayer(
            text=scene.subtitle,
            x_pct=50,
            y_pct=SUBTITLE_Y_PCT,
            font_size=fit_font_size(scene.subtitle, _scale(SUBTITLE_FONT_SIZE, h), max_width),
            color=SUBTITLE_COLOR,
            font_family="Arial, sans-serif",
            font_weight=800,
        ))
    return FrameMarkup(width=w, height=h, background=scene.background, layers=tuple(layers))


def to_svg(markup: FrameMarkup) -> str:
    """Serialize markup as a standalone SVG document."""
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" '
        f'width="{markup.width}" height="{markup.height}">',
        f'  <rect width="100%" height="100%" fill="{markup.background}" />',
    ]
    for layer in markup.layers:
        parts.append(
            f'  <text x="{layer.x_pct:g}%" y="{layer.y_pct:g}%" text-anchor="middle"'
            f' font-family="{layer.font_family}" font-size="{layer.font_size}"'
            f' font-weight="{layer.font_weight}" fill="{layer.color}">'
            f'{escape(layer.text)}</text>'
        )
    parts.append("</svg>")
    return "\n".join(parts)


def render_frame(markup: FrameMarkup) -> np.ndarray:
    """Rasterize markup to an RGB frame.

    Returns:
        numpy array of shape (height, width, 3), dtype uint8.
    """
    w, h = markup.width, markup.height
    frame = np.full((h, w, 3), parse_hex_color(markup.background), dtype=np.uint8)
    img = Image.fromarray(frame)
    draw = ImageDraw.Draw(img)

    for layer in markup.layers:
        if not layer.text:
            continue
        font = load_font(layer.font_size)
        x = w * layer.x_pct / 100
        y = h * layer.y_pct / 100
        # "ms" = horizontal middle, vertical baseline — SVG's text-anchor="middle".
        draw.text((x, y), layer.text, fill=parse_hex_color(layer.color), font=font, anchor="ms")

    return np.array(img)
