"""
Icons - Icon-theme lookup, mimetype icon names and generated glyph icons.

Icons are opaque strings to the rest of the core: an icon-theme name, an
absolute file path, or a data: URI.
"""

import mimetypes
import os
import threading
from pathlib import Path
from typing import Optional
from urllib.parse import quote

THEMES = ["hicolor", "Adwaita", "gnome", "breeze", "Papirus", "oxygen"]
SIZE_DIRS = [
    "scalable/apps", "256x256/apps", "128x128/apps",
    "64x64/apps", "48x48/apps", "32x32/apps",
]
EXTENSIONS = [".png", ".svg", ".xpm"]

GLYPH_COLORS = {
    "blue": "#007AFF",
    "red": "#FF3B30",
    "pink": "#FF2D55",
    "orange": "#FF9500",
    "yellow": "#FFCC00",
    "green": "#34C759",
    "teal": "#5AC8FA",
    "mint": "#5AC8FA",
    "indigo": "#5856D6",
    "purple": "#5856D6",
    "gray": "#8E8E93",
    "grey": "#8E8E93",
}


def default_icon_dirs() -> list[Path]:
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"
    dirs = [Path.home() / ".icons", Path(data_home) / "icons"]
    dirs += [Path(d) / "icons" for d in data_dirs.split(":") if d]
    return dirs


class IconResolver:
    """Resolve icon names to files in the installed icon themes (cached)."""

    def __init__(
        self,
        icon_dirs: Optional[list] = None,
        pixmap_dirs: Optional[list] = None,
        themes: Optional[list[str]] = None,
    ):
        self.icon_dirs = [Path(d) for d in icon_dirs] if icon_dirs is not None else default_icon_dirs()
        self.pixmap_dirs = (
            [Path(d) for d in pixmap_dirs] if pixmap_dirs is not None
            else [Path("/usr/share/pixmaps")]
        )
        self.themes = themes or THEMES
        self._cache: dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def resolve(self, name: str) -> Optional[str]:
        """
        Find the file for an icon name.

        Args:
            name: Icon-theme name ("firefox") or absolute path

        Returns:
            Absolute path to the icon file, or None if not installed
        """
        if not name:
            return None

        with self._lock:
            if name in self._cache:
                return self._cache[name]

        path = self._lookup(name)

        with self._lock:
            self._cache[name] = path
        return path

    def resolve_or_name(self, name: str) -> str:
        """Resolved path if found, else the name for the toolkit to try."""
        return self.resolve(name) or name

    def _lookup(self, name: str) -> Optional[str]:
        if os.path.isabs(name):
            return name if os.path.isfile(name) else None

        for base in self.icon_dirs:
            for theme in self.themes:
                theme_dir = base / theme
                if not theme_dir.is_dir():
                    continue
                for size in SIZE_DIRS:
                    for ext in EXTENSIONS:
                        candidate = theme_dir / size / (name + ext)
                        if candidate.is_file():
                            return str(candidate)

        for base in self.pixmap_dirs:
            for ext in EXTENSIONS:
                candidate = base / (name + ext)
                if candidate.is_file():
                    return str(candidate)
        return None

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


def icon_for_path(path: str, is_directory: Optional[bool] = None) -> str:
    """Freedesktop icon name for a filesystem path."""
    if is_directory is None:
        is_directory = os.path.isdir(path)
    if is_directory:
        return "folder"
    if path.endswith(".desktop") or path.endswith(".app"):
        return "application-x-executable"

    mime, _ = mimetypes.guess_type(path)
    if not mime:
        return "application-x-generic"

    major = mime.split("/", 1)[0]
    if major == "text":
        return "text-x-generic"
    if major in ("image", "audio", "video"):
        return f"{major}-x-generic"
    return mime.replace("/", "-")


def glyph_icon(symbol: str = "〉", color: str = "blue", size: int = 32) -> str:
    """
    Rounded-square icon with a white glyph, as an SVG data: URI.

    Unknown colour names fall back to blue.
    """
    fill = GLYPH_COLORS.get(color.lower(), GLYPH_COLORS["blue"])
    radius = size // 4
    font_size = round(size * 0.56)
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
        f'viewBox="0 0 {size} {size}">'
        f'<rect width="{size}" height="{size}" rx="{radius}" ry="{radius}" fill="{fill}"/>'
        f'<text x="50%" y="50%" dominant-baseline="central" text-anchor="middle" '
        f'font-family="sans-serif" font-weight="bold" font-size="{font_size}" '
        f'fill="#FFFFFF">{_xml_escape(symbol)}</text>'
        "</svg>"
    )
    return "data:image/svg+xml;charset=utf-8," + quote(svg)


def _xml_escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
