"""Tests for frame markup, SVG serialization, and rasterization."""

import numpy as np
import pytest

from lessonreel.common import load_font, parse_hex_color, text_size
from lessonreel.frames import (
    MAX_TEXT_WIDTH_FRAC,
    SUBTITLE_Y_PCT,
    build_markup,
    fit_font_size,
    render_frame,
    title_y_pct,
    to_svg,
)
from lessonreel.models import SceneDescriptor
from lessonreel.timeline import INTRO


class TestTitleBounce:
    def test_at_rest_on_first_and_last_frame(self):
        assert title_y_pct(0.0) == 36
        assert title_y_pct(1.0) == 36

    def test_peaks_mid_scene(self):
        assert title_y_pct(0.5) == pytest.approx(36.4)

    def test_never_below_rest(self):
        assert all(title_y_pct(p / 20) >= 36 for p in range(21))


CARD = SceneDescriptor(duration_seconds=15, background="#F7E6A5", title="A", subtitle="A is for Apple")


class TestBuildMarkup:
    def test_layers(self):
        markup = build_markup(CARD, 0.0, (1280, 720))
        assert markup.width == 1280
        assert markup.height == 720
        assert markup.background == "#F7E6A5"
        title, subtitle = markup.layers
        assert title.text == "A"
        assert title.font_size == 180
        assert title.y_pct == 36
        assert subtitle.text == "A is for Apple"
        assert subtitle.y_pct == SUBTITLE_Y_PCT
        assert subtitle.font_size == 64

    def test_font_sizes_scale_with_height(self):
        markup = build_markup(CARD, 0.0, (640, 360))
        assert [layer.font_size for layer in markup.layers] == [90, 32]

    def test_long_text_shrinks_to_fit_width(self):
        markup = build_markup(INTRO, 0.0, (1280, 720))
        title = markup.layers[0]
        assert title.font_size <= 180
        assert text_size(title.text, load_font(title.font_size))[0] <= 1280 * MAX_TEXT_WIDTH_FRAC

    def test_fit_keeps_size_when_text_fits(self):
        assert fit_font_size("A", 64, 1000) == 64

    def test_empty_subtitle_omitted(self):
        scene = SceneDescriptor(duration_seconds=1, background="#000000", title="A", subtitle="")
        assert len(build_markup(scene, 0.0, (320, 180)).layers) == 1

    def test_markup_is_hashable_and_deterministic(self):
        a = build_markup(INTRO, 0.25, (320, 180))
        b = build_markup(INTRO, 0.25, (320, 180))
        assert a == b
        assert hash(a) == hash(b)


class TestToSvg:
    def test_contains_background_and_text(self):
        svg = to_svg(build_markup(INTRO, 0.0, (1280, 720)))
        assert svg.startswith("<svg")
        assert 'width="1280" height="720"' in svg
        assert 'fill="#A9D6F5"' in svg
        assert "FUN LEARNING TIME!" in svg
        assert 'y="36%"' in svg
        assert 'y="60%"' in svg

    def test_escapes_text(self):
        scene = SceneDescriptor(duration_seconds=1, background="#000000", title="A&B", subtitle="<x>")
        svg = to_svg(build_markup(scene, 0.0, (320, 180)))
        assert "A&amp;B" in svg
        assert "&lt;x&gt;" in svg


class TestRenderFrame:
    def test_shape_and_dtype(self):
        frame = render_frame(build_markup(INTRO, 0.0, (320, 180)))
        assert frame.shape == (180, 320, 3)
        assert frame.dtype == np.uint8

    def test_background_fill(self):
        frame = render_frame(build_markup(INTRO, 0.0, (320, 180)))
        assert tuple(frame[0, 0]) == parse_hex_color("#A9D6F5")
        assert tuple(frame[-1, -1]) == parse_hex_color("#A9D6F5")

    def test_text_is_drawn(self):
        frame = render_frame(build_markup(INTRO, 0.0, (320, 180)))
        bg = np.array(parse_hex_color("#A9D6F5"), dtype=np.uint8)
        assert np.any(frame != bg)
