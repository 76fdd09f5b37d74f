"""
Tests for icon resolution and generated icons.

Builds a small icon theme in a tmp directory.
"""

from urllib.parse import unquote

from quickseek.services.icons import IconResolver, glyph_icon, icon_for_path


def _theme(tmp_path):
    icons = tmp_path / "icons"
    apps = icons / "hicolor" / "48x48" / "apps"
    apps.mkdir(parents=True)
    (apps / "firefox.png").write_bytes(b"\x89PNG")
    pixmaps = tmp_path / "pixmaps"
    pixmaps.mkdir()
    (pixmaps / "oldapp.xpm").write_text("/* XPM */")
    return icons, pixmaps


class TestIconResolver:

    def test_finds_theme_icon(self, tmp_path):
        icons, pixmaps = _theme(tmp_path)
        resolver = IconResolver([icons], [pixmaps])
        assert resolver.resolve("firefox") == str(icons / "hicolor" / "48x48" / "apps" / "firefox.png")

    def test_falls_back_to_pixmaps(self, tmp_path):
        icons, pixmaps = _theme(tmp_path)
        resolver = IconResolver([icons], [pixmaps])
        assert resolver.resolve("oldapp") == str(pixmaps / "oldapp.xpm")

    def test_unknown_icon(self, tmp_path):
        icons, pixmaps = _theme(tmp_path)
        resolver = IconResolver([icons], [pixmaps])
        assert resolver.resolve("nope") is None
        assert resolver.resolve_or_name("nope") == "nope"
        assert resolver.resolve("") is None

    def test_absolute_paths(self, tmp_path):
        icon = tmp_path / "custom.svg"
        icon.write_text("<svg/>")
        resolver = IconResolver([], [])
        assert resolver.resolve(str(icon)) == str(icon)
        assert resolver.resolve(str(tmp_path / "missing.svg")) is None

    def test_results_are_cached_until_cleared(self, tmp_path):
        icons, pixmaps = _theme(tmp_path)
        resolver = IconResolver([icons], [pixmaps])
        assert resolver.resolve("later") is None

        (pixmaps / "later.png").write_bytes(b"\x89PNG")
        assert resolver.resolve("later") is None

        resolver.clear_cache()
        assert resolver.resolve("later") == str(pixmaps / "later.png")


class TestIconForPath:

    def test_folder(self, tmp_path):
        assert icon_for_path(str(tmp_path)) == "folder"

    def test_applications(self):
        assert icon_for_path("/usr/share/applications/x.desktop", False) == "application-x-executable"
        assert icon_for_path("/Applications/Safari.app", False) == "application-x-executable"

    def test_mimetype_families(self):
        assert icon_for_path("/a/notes.txt", False) == "text-x-generic"
        assert icon_for_path("/a/photo.png", False) == "image-x-generic"
        assert icon_for_path("/a/report.pdf", False) == "application-pdf"

    def test_unknown_extension(self):
        assert icon_for_path("/a/blob.qqqq", False) == "application-x-generic"


class TestGlyphIcon:

    def test_data_uri(self):
        icon = glyph_icon("〉", "green")
        assert icon.startswith("data:image/svg+xml")
        svg = unquote(icon.split(",", 1)[1])
        assert 'fill="#34C759"' in svg
        assert "〉" in svg

    def test_unknown_colour_is_blue(self):
        svg = unquote(glyph_icon("x", "chartreuse").split(",", 1)[1])
        assert 'fill="#007AFF"' in svg

    def test_glyph_is_escaped(self):
        svg = unquote(glyph_icon("<&>").split(",", 1)[1])
        assert "&lt;&amp;&gt;" in svg
