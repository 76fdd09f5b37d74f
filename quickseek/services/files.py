"""
File Indexes - Live file search over plocate (Linux) or mdfind (macOS).

Both backends run the index tool as an asyncio subprocess, stat the hits
in a worker thread, and stream them as one or more batches. Cancelling
the query kills the child process.
"""

import asyncio
import mimetypes
import os
import stat
import sys
from abc import abstractmethod
from datetime import datetime
from typing import Optional

from loguru import logger

from quickseek.errors import QueryFailure
from quickseek.services.live_query import (
    APPLICATION_BUNDLE_TYPE,
    DESKTOP_ENTRY_TYPE,
    DIRECTORY_TYPE,
    IndexItem,
    LiveIndex,
    LiveQuery,
    QueryPredicate,
)

BATCH_SIZE = 200
SHORT_QUERY_LENGTH = 3
GLOB_CHARS = "\\*?["


def content_type_for(path: str, is_directory: bool) -> str:
    if path.endswith(".app"):
        return APPLICATION_BUNDLE_TYPE
    if is_directory:
        return DIRECTORY_TYPE
    if path.endswith(".desktop"):
        return DESKTOP_ENTRY_TYPE
    mime, _ = mimetypes.guess_type(path)
    return mime or "application/octet-stream"


def stat_path(path: str) -> Optional[IndexItem]:
    """Build an index item for path, or None if it has vanished."""
    try:
        st = os.stat(path)
    except OSError:
        return None

    is_directory = stat.S_ISDIR(st.st_mode)
    name = os.path.basename(path.rstrip("/")) or path
    return IndexItem(
        path=path,
        display_name=name,
        fs_name=name,
        content_type=content_type_for(path, is_directory),
        last_used=datetime.fromtimestamp(st.st_atime),
        is_directory=is_directory,
    )


def stat_paths(paths: list[str]) -> list[IndexItem]:
    items = []
    for path in paths:
        item = stat_path(path)
        if item is not None:
            items.append(item)
    return items


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass


class CommandIndex(LiveIndex):
    """LiveIndex backed by a command printing NUL-separated paths."""

    # Exit codes meaning "ran fine"; locate exits 1 when nothing matched
    ok_returncodes = (0,)
    limit = 500

    @abstractmethod
    def command(self, predicate: QueryPredicate) -> list[str]:
        """Argument vector that runs the index tool for predicate."""
        ...

    def accept(self, item: IndexItem, predicate: QueryPredicate) -> bool:
        return predicate.evaluate(item)

    def start_query(self, predicate: QueryPredicate) -> LiveQuery:
        argv = self.command(predicate)

        async def produce(emit):
            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.DEVNULL,
                )
            except FileNotFoundError as e:
                raise QueryFailure(f"{argv[0]} not found") from e

            try:
                stdout, _ = await process.communicate()
            except asyncio.CancelledError:
                _kill(process)
                raise

            if process.returncode not in self.ok_returncodes:
                raise QueryFailure(f"{argv[0]} exited with {process.returncode}")

            paths = [os.fsdecode(p) for p in stdout.split(b"\0") if p][:self.limit]
            logger.debug(f"{argv[0]}: {len(paths)} hits for {predicate.query!r}")

            for start in range(0, len(paths), BATCH_SIZE):
                chunk = paths[start:start + BATCH_SIZE]
                items = await asyncio.to_thread(stat_paths, chunk)
                batch = [i for i in items if self.accept(i, predicate)]
                if batch:
                    emit(batch)

        return LiveQuery(produce, description=f"{argv[0]} {predicate.query!r}")


class LocateIndex(CommandIndex):
    """Filename search through plocate (or a compatible locate)."""

    ok_returncodes = (0, 1)

    def __init__(self, binary: str = "plocate", limit: int = 500):
        self.binary = binary
        self.limit = limit

    def pattern(self, query: str) -> str:
        escaped = "".join(f"\\{c}" if c in GLOB_CHARS else c for c in query)
        # Short queries only make sense as a basename prefix
        if len(query) < SHORT_QUERY_LENGTH:
            return f"{escaped}*"
        return escaped

    def command(self, predicate: QueryPredicate) -> list[str]:
        return [
            self.binary, "-i", "-0", "-b",
            "-l", str(self.limit),
            self.pattern(predicate.query),
        ]


class SpotlightIndex(CommandIndex):
    """Metadata search through mdfind."""

    def __init__(self, binary: str = "mdfind", limit: int = 500):
        self.binary = binary
        self.limit = limit

    def command(self, predicate: QueryPredicate) -> list[str]:
        argv = [self.binary, "-0"]
        for scope in predicate.scopes:
            argv += ["-onlyin", os.path.expanduser(scope)]
        argv.append(predicate.to_spotlight())
        return argv

    def accept(self, item: IndexItem, predicate: QueryPredicate) -> bool:
        # mdfind already applied the name terms
        return predicate.accepts_content_type(item.content_type)


def default_file_index(
    locate_binary: str = "plocate",
    limit: int = 500,
    platform: str = sys.platform,
) -> LiveIndex:
    """Pick the file index for the running platform."""
    if platform == "darwin":
        return SpotlightIndex(limit=limit)
    return LocateIndex(binary=locate_binary, limit=limit)
