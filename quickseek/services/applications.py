"""
Desktop Entry Index - Installed applications from XDG .desktop files.

Scans the XDG application directories (user first, then system, then
flatpak exports) in a worker thread and streams one batch per directory.
The first entry found for a desktop id wins, matching XDG precedence.
"""

import asyncio
import configparser
import os
from pathlib import Path
from typing import Optional

from loguru import logger

from quickseek.services.live_query import (
    DESKTOP_ENTRY_TYPE,
    IndexItem,
    LiveIndex,
    LiveQuery,
    QueryPredicate,
)

DESKTOP_SECTION = "Desktop Entry"


def default_application_dirs() -> list[Path]:
    """XDG application directories in precedence order."""
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    data_dirs = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share:/usr/share"

    dirs = [Path(data_home) / "applications"]
    dirs += [Path(d) / "applications" for d in data_dirs.split(":") if d]
    dirs += [
        Path(data_home) / "flatpak" / "exports" / "share" / "applications",
        Path("/var/lib/flatpak/exports/share/applications"),
    ]

    unique = []
    for d in dirs:
        if d not in unique:
            unique.append(d)
    return unique


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def parse_desktop_entry(path: Path, desktop_id: str) -> Optional[IndexItem]:
    """
    Parse a .desktop file into an index item.

    Returns None for unreadable files, non-application entries, and
    entries marked NoDisplay or Hidden.
    """
    parser = configparser.ConfigParser(
        interpolation=None, strict=False, delimiters=("=",)
    )
    parser.optionxform = str
    try:
        parser.read(path, encoding="utf-8")
    except (configparser.Error, UnicodeDecodeError) as e:
        logger.debug(f"Skipping unreadable desktop entry {path}: {e}")
        return None

    if not parser.has_section(DESKTOP_SECTION):
        return None
    entry = parser[DESKTOP_SECTION]

    if entry.get("Type", "Application") != "Application":
        return None
    if _is_true(entry.get("NoDisplay")) or _is_true(entry.get("Hidden")):
        return None

    name = entry.get("Name", "").strip()
    if not name:
        return None

    localized = []
    for key, value in entry.items():
        value = value.strip()
        if key.startswith("Name[") and value and value not in localized:
            localized.append(value)

    return IndexItem(
        path=str(path),
        display_name=name,
        fs_name=path.name,
        content_type=DESKTOP_ENTRY_TYPE,
        attributes={
            "desktop_id": desktop_id,
            "icon": entry.get("Icon", "").strip(),
            "localized_names": tuple(localized),
            "exec": entry.get("Exec", "").strip(),
        },
    )


def scan_directory(directory: Path) -> list[IndexItem]:
    """Parse every desktop entry below directory."""
    if not directory.is_dir():
        return []

    items = []
    for path in sorted(directory.rglob("*.desktop")):
        desktop_id = str(path.relative_to(directory)).replace(os.sep, "-")
        item = parse_desktop_entry(path, desktop_id)
        if item is not None:
            items.append(item)
    return items


class DesktopEntryIndex(LiveIndex):
    """LiveIndex over XDG desktop entries."""

    def __init__(self, directories: Optional[list] = None):
        if directories is None:
            self.directories = default_application_dirs()
        else:
            self.directories = [Path(d).expanduser() for d in directories]

    def start_query(self, predicate: QueryPredicate) -> LiveQuery:
        async def produce(emit):
            seen: set[str] = set()
            for directory in self.directories:
                found = await asyncio.to_thread(scan_directory, directory)
                batch = []
                for item in found:
                    desktop_id = item.attributes["desktop_id"]
                    if desktop_id in seen:
                        continue
                    seen.add(desktop_id)
                    if predicate.evaluate(item):
                        batch.append(item)
                if batch:
                    logger.debug(f"{len(batch)} desktop entries from {directory}")
                    emit(batch)

        return LiveQuery(produce, description="desktop entry scan")
