"""Tests for lessonreel.common utilities."""

import pytest

from lessonreel.common import (
    load_font,
    parse_hex_color,
    resolve_path_vars,
    text_size,
)


class TestParseHexColor:
    def test_with_hash(self):
        assert parse_hex_color("#A9D6F5") == (169, 214, 245)

    def test_without_hash(self):
        assert parse_hex_color("1f2937") == (31, 41, 55)

    def test_black(self):
        assert parse_hex_color("#000000") == (0, 0, 0)

    def test_invalid_raises(self):
        with pytest.raises(ValueError, match="Invalid hex color"):
            parse_hex_color("#abc")
        with pytest.raises(ValueError, match="Invalid hex color"):
            parse_hex_color("#zzzzzz")


class TestResolvePathVars:
    def test_single_var(self):
        assert resolve_path_vars("${root}/renders", {"root": "/srv"}) == "/srv/renders"

    def test_multiple_vars(self):
        paths = {"root": "/srv", "name": "loop"}
        assert resolve_path_vars("${root}/${name}.mp3", paths) == "/srv/loop.mp3"

    def test_no_vars(self):
        assert resolve_path_vars("/plain/path", {}) == "/plain/path"

    def test_unknown_var_raises(self):
        with pytest.raises(ValueError, match="Unknown path variable"):
            resolve_path_vars("${missing}/x", {})


class TestLoadFont:
    def test_returns_font_object(self):
        assert load_font(size=24) is not None

    def test_cached_per_size(self):
        assert load_font(size=30) is load_font(size=30)


class TestTextSize:
    def test_positive_size(self):
        w, h = text_size("Apple", load_font(size=40))
        assert w > 0
        assert h > 0

    def test_longer_text_is_wider(self):
        font = load_font(size=40)
        assert text_size("Xylophone", font)[0] > text_size("X", font)[0]
