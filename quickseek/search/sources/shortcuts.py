"""
Shortcut Source - Search and run user automation scripts.

The catalog comes from one run of the shortcuts CLI ("shortcuts list").
Each entry's path is the command that runs it, e.g.
    shortcuts run "Resize Images"
and executing a result spawns that command detached.
"""

import asyncio
import os
import subprocess
from typing import Optional

from loguru import logger

from quickseek.errors import SubprocessFailure
from quickseek.search.matcher import matches, score, sort_results
from quickseek.search.result import CATEGORY_SHORTCUTS, ResultType, SearchResult
from quickseek.search.router import SearchSource, SourceMode
from quickseek.search.sources.applications import AppInfo
from quickseek.services.icons import IconResolver, glyph_icon

HOST_APP_PATHS = (
    "/System/Applications/Shortcuts.app",
    "/Applications/Shortcuts.app",
)
HOST_ICON_NAME = "shortcuts"

_HEADER_MARKERS = ("name:", "type:", "folder:")


def parse_shortcut_list(output: str) -> list[str]:
    """
    Extract shortcut names from list command output.

    Drops blank lines, "Name:"/"Type:"/"Folder:" headers and rules made
    of dashes or equals signs.
    """
    names = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        lowered = line.lower()
        if any(marker in lowered for marker in _HEADER_MARKERS):
            continue
        if line.startswith("-") or line.startswith("="):
            continue
        names.append(line)
    return names


class ShortcutSource(SearchSource):
    """Match queries against the shortcut catalog."""

    name = "shortcuts"
    priority = 30
    mode = SourceMode.AUTOMATIC

    def __init__(
        self,
        list_command=("shortcuts", "list"),
        run_command=("shortcuts", "run"),
        icon_resolver: Optional[IconResolver] = None,
        list_timeout: float = 10.0,
        host_app_paths=HOST_APP_PATHS,
        mode: Optional[SourceMode] = None,
    ):
        self.list_command = list(list_command)
        self.run_command = list(run_command)
        self.icon_resolver = icon_resolver
        self.list_timeout = list_timeout
        self.host_app_paths = tuple(host_app_paths)
        if mode is not None:
            self.mode = SourceMode(mode)

        self._shortcuts: list[AppInfo] = []
        self._loading: Optional[asyncio.Task] = None

    @property
    def shortcuts(self) -> list[AppInfo]:
        return list(self._shortcuts)

    @property
    def is_loading(self) -> bool:
        return self._loading is not None and not self._loading.done()

    def token_for(self, name: str) -> str:
        """Invocation token stored in a result's path."""
        return f'{" ".join(self.run_command)} "{name}"'

    def name_from_token(self, token: str) -> Optional[str]:
        """Shortcut name encoded in token, or None if token is malformed."""
        parts = token.split(" ")
        prefix_len = len(self.run_command)
        if len(parts) <= prefix_len or parts[:prefix_len] != self.run_command:
            return None
        name = " ".join(parts[prefix_len:]).strip().strip('"')
        return name or None

    def _icon(self) -> str:
        if self.icon_resolver is not None:
            path = self.icon_resolver.resolve(HOST_ICON_NAME)
            if path:
                return path
        for path in self.host_app_paths:
            if os.path.exists(path):
                return path
        return glyph_icon("〉", "blue")

    async def start(self) -> None:
        await self.load()

    async def load(self) -> list[AppInfo]:
        """Run the list command. Concurrent callers share one run."""
        if not self.is_loading:
            self._loading = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._loading)

    async def _load(self) -> list[AppInfo]:
        try:
            output = await self._run_list()
        except SubprocessFailure as e:
            logger.warning(f"Could not list shortcuts: {e}")
            return []

        icon = self._icon()
        shortcuts = [
            AppInfo(name=name, path=self.token_for(name), icon=icon)
            for name in parse_shortcut_list(output)
        ]
        self._shortcuts = shortcuts
        logger.info(f"Loaded {len(shortcuts)} shortcuts")
        return shortcuts

    async def _run_list(self) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.list_command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise SubprocessFailure(f"{self.list_command[0]}: {e}") from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), self.list_timeout)
        except asyncio.TimeoutError:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
            raise SubprocessFailure(
                f"{self.list_command[0]} timed out after {self.list_timeout}s"
            ) from None

        output = stdout.decode("utf-8", errors="replace")
        if process.returncode != 0:
            raise SubprocessFailure(
                f"{self.list_command[0]} exited with {process.returncode}: {output.strip()[:200]}"
            )
        return output

    async def search(self, query: str) -> list[SearchResult]:
        if not query or not query.strip():
            return []

        if not self._shortcuts:
            if not self.is_loading:
                self._loading = asyncio.ensure_future(self._load())
            return []

        results = [
            SearchResult(
                name=shortcut.name,
                path=shortcut.path,
                type=ResultType.SHORTCUT,
                category=CATEGORY_SHORTCUTS,
                icon=shortcut.icon,
                last_used=shortcut.last_used,
                relevance_score=score(shortcut.name, query),
            )
            for shortcut in self._shortcuts
            if matches(shortcut.name, query)
        ]
        return sort_results(results)

    def execute(self, result: SearchResult) -> bool:
        """
        Run the shortcut behind result, fire-and-forget.

        Returns:
            True if the run command was spawned
        """
        if result.type != ResultType.SHORTCUT:
            return False

        name = self.name_from_token(result.path)
        if name is None:
            logger.warning(f"Malformed shortcut token: {result.path!r}")
            return False

        try:
            subprocess.Popen(
                [*self.run_command, name],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.warning(f"Could not run shortcut {name!r}: {e}")
            return False

        logger.debug(f"Running shortcut: {name}")
        return True

    def close(self) -> None:
        if self.is_loading:
            self._loading.cancel()
