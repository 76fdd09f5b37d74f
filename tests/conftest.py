"""
Shared test fixtures for the quickseek test suite.

Provides real settings and desktop-entry files on disk, an in-memory
LiveIndex that speaks the same channel protocol as the platform
backends, and stub sources for orchestrator tests.
"""

import asyncio
from datetime import datetime, timedelta

import pytest
import toml

from quickseek.search.result import SearchResult
from quickseek.search.router import SearchSource, SourceMode
from quickseek.services.live_query import IndexItem, LiveIndex, LiveQuery


class FakeIndex(LiveIndex):
    """In-memory index. Emits matches in two batches."""

    def __init__(self, items=(), delay=0.0, error=None, hang_after_first_batch=False):
        self.items = list(items)
        self.delay = delay
        self.error = error
        self.hang_after_first_batch = hang_after_first_batch
        self.predicates = []
        self.cancelled = 0

    @property
    def calls(self) -> int:
        return len(self.predicates)

    def start_query(self, predicate):
        self.predicates.append(predicate)

        async def produce(emit):
            try:
                if self.delay:
                    await asyncio.sleep(self.delay)
                if self.error is not None:
                    raise self.error
                matched = [i for i in self.items if predicate.evaluate(i)]
                half = len(matched) // 2
                if matched[:half]:
                    emit(matched[:half])
                if self.hang_after_first_batch:
                    await asyncio.sleep(3600)
                if matched[half:]:
                    emit(matched[half:])
            except asyncio.CancelledError:
                self.cancelled += 1
                raise

        return LiveQuery(produce, description="fake query")


class StubSource(SearchSource):
    """Source returning canned results after an optional delay."""

    def __init__(self, name, results=None, delay=0.0, error=None,
                 mode=SourceMode.AUTOMATIC, priority=50):
        self.name = name
        self.priority = priority
        self.mode = mode
        self.results = results if results is not None else {}
        self.delay = delay
        self.error = error
        self.queries = []
        self.started = False
        self.closed = False

    async def search(self, query):
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if callable(self.results):
            return self.results(query)
        return list(self.results.get(query, []))

    async def start(self):
        self.started = True

    def close(self):
        self.closed = True


def make_app_item(name, path=None, localized=(), icon="", desktop_id=None, last_used=None):
    desktop_id = desktop_id or f"{name.lower().replace(' ', '-')}.desktop"
    return IndexItem(
        path=path or f"/usr/share/applications/{desktop_id}",
        display_name=name,
        fs_name=desktop_id,
        content_type="application/x-desktop",
        last_used=last_used,
        attributes={
            "desktop_id": desktop_id,
            "icon": icon,
            "localized_names": tuple(localized),
        },
    )


def make_file_item(path, is_directory=False, last_used=None, content_type=None):
    name = path.rstrip("/").rsplit("/", 1)[-1]
    if content_type is None:
        content_type = "inode/directory" if is_directory else "text/plain"
    return IndexItem(
        path=path,
        display_name=name,
        fs_name=name,
        content_type=content_type,
        last_used=last_used,
        is_directory=is_directory,
    )


def make_result(name, category="Applications", **kwargs):
    return SearchResult(name=name, category=category, **kwargs)


@pytest.fixture
def fake_index():
    return FakeIndex


@pytest.fixture
def stub_source():
    return StubSource


@pytest.fixture
def app_items():
    now = datetime(2024, 5, 1, 12, 0, 0)
    return [
        make_app_item("Firefox", localized=("火狐浏览器",), icon="firefox"),
        make_app_item("Files", localized=("文件",), icon="org.gnome.Nautilus",
                      last_used=now - timedelta(days=1)),
        make_app_item("Visual Studio Code", icon="code", last_used=now),
        make_app_item("Terminal", icon="utilities-terminal"),
        make_app_item("quickseek", icon="quickseek"),
    ]


@pytest.fixture
def tmp_settings(tmp_path):
    """Create a real settings TOML file with all sections."""
    settings_path = tmp_path / "settings.toml"
    data = {
        "search": {"debounce_ms": 150, "source_timeout_ms": 500},
        "sources": {
            "files": {"mode": "automatic", "scopes": ["~/Documents"]},
            "shortcuts": {"enabled": False},
        },
        "actions": {"opener": ["gio", "open"]},
        "logging": {"level": "DEBUG"},
    }
    settings_path.write_text(toml.dumps(data))
    return settings_path


@pytest.fixture
def desktop_dirs(tmp_path):
    """Two real application directories with overlapping desktop ids."""
    user_dir = tmp_path / "user" / "applications"
    system_dir = tmp_path / "system" / "applications"
    user_dir.mkdir(parents=True)
    system_dir.mkdir(parents=True)

    (user_dir / "firefox.desktop").write_text(
        "[Desktop Entry]\n"
        "Type=Application\n"
        "Name=Firefox Nightly\n"
        "Icon=firefox-nightly\n"
        "Exec=firefox-nightly %u\n",
        encoding="utf-8",
    )
    (system_dir / "firefox.desktop").write_text(
        "[Desktop Entry]\n"
        "Type=Application\n"
        "Name=Firefox\n"
        "Icon=firefox\n",
        encoding="utf-8",
    )
    (system_dir / "org.gnome.Nautilus.desktop").write_text(
        "# comment line\n"
        "[Desktop Entry]\n"
        "Type=Application\n"
        "Name=Files\n"
        "Name[zh_CN]=文件\n"
        "Name[de]=Dateien\n"
        "Name[fr]=Fichiers\n"
        "Comment=Access and organize files\n"
        "Icon=org.gnome.Nautilus\n"
        "Exec=nautilus --new-window %U\n"
        "\n"
        "[Desktop Action new-window]\n"
        "Name=New Window\n"
        "Exec=nautilus --new-window\n",
        encoding="utf-8",
    )
    (system_dir / "hidden.desktop").write_text(
        "[Desktop Entry]\nType=Application\nName=Hidden Helper\nNoDisplay=true\n",
        encoding="utf-8",
    )
    (system_dir / "link.desktop").write_text(
        "[Desktop Entry]\nType=Link\nName=Website\nURL=https://example.com\n",
        encoding="utf-8",
    )
    kde = system_dir / "kde4"
    kde.mkdir()
    (kde / "kate.desktop").write_text(
        "[Desktop Entry]\nType=Application\nName=Kate\nIcon=kate\n",
        encoding="utf-8",
    )
    (system_dir / "broken.desktop").write_text("no section header here\n", encoding="utf-8")
    return [user_dir, system_dir]
