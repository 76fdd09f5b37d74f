"""
Live Query - One-shot, cancellable index queries.

A LiveIndex answers a QueryPredicate with a LiveQuery: a channel of result
batches fed by a producer task. Callers either iterate the batches as they
arrive or take a single snapshot with a deadline. Cancelling the query
cancels the producer, which is responsible for releasing whatever it holds
(child processes, file handles).
"""

import asyncio
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from quickseek.errors import LoadTimeout, QueryFailure

DESKTOP_ENTRY_TYPE = "application/x-desktop"
APPLICATION_BUNDLE_TYPE = "com.apple.application-bundle"
DIRECTORY_TYPE = "inode/directory"

APPLICATION_CONTENT_TYPES = frozenset({DESKTOP_ENTRY_TYPE, APPLICATION_BUNDLE_TYPE})

MIN_WORD_LENGTH = 2
MIN_CONTAINS_LENGTH = 3


@dataclass(frozen=True)
class IndexItem:
    """A single hit from a live index."""
    path: str
    display_name: str
    fs_name: str
    content_type: str = ""
    last_used: Optional[datetime] = None
    is_directory: bool = False
    attributes: dict[str, Any] = field(default_factory=dict)


def fold(text: str) -> str:
    """Case- and diacritic-insensitive form of text."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


@dataclass(frozen=True)
class QueryPredicate:
    """
    Disjunction of name terms, filtered by content type.

    An item matches when its content type passes the include/exclude sets
    and at least one name term matches. A predicate with no name terms
    matches every item of an accepted content type.
    """
    query: str = ""
    exact: tuple[str, ...] = ()
    name_prefixes: tuple[str, ...] = ()
    fs_name_prefixes: tuple[str, ...] = ()
    name_words: tuple[str, ...] = ()
    name_contains: tuple[str, ...] = ()
    fs_name_contains: tuple[str, ...] = ()
    content_types: frozenset[str] = frozenset()
    excluded_content_types: frozenset[str] = frozenset()
    scopes: tuple[str, ...] = ()

    @classmethod
    def for_name(
        cls,
        query: str,
        excluded_content_types: frozenset[str] = APPLICATION_CONTENT_TYPES,
        scopes: tuple[str, ...] = (),
    ) -> "QueryPredicate":
        """
        Build the file-search predicate for a free-text query.

        Args:
            query: Text typed by the user
            excluded_content_types: Content types never returned
            scopes: Optional directories to restrict the search to

        Returns:
            Predicate matching exact names, name and filename prefixes,
            per-word prefixes, and for longer queries, containment.
        """
        query = query.strip()
        words = [w for w in query.split() if len(w) >= MIN_WORD_LENGTH]

        name_contains: tuple[str, ...] = ()
        fs_name_contains: tuple[str, ...] = ()
        if len(query) >= MIN_CONTAINS_LENGTH:
            name_contains = (query,)
            # "Foo.app" names a bundle, not a file containing ".app"
            if not query.lower().endswith(".app"):
                fs_name_contains = (query,)

        return cls(
            query=query,
            exact=(query,),
            name_prefixes=(query, *words),
            fs_name_prefixes=(query,),
            name_words=tuple(w for w in words if len(w) >= MIN_CONTAINS_LENGTH),
            name_contains=name_contains,
            fs_name_contains=fs_name_contains,
            excluded_content_types=frozenset(excluded_content_types),
            scopes=tuple(scopes),
        )

    @classmethod
    def for_content_types(
        cls, content_types: frozenset[str], scopes: tuple[str, ...] = ()
    ) -> "QueryPredicate":
        """Match every item of the given content types."""
        return cls(content_types=frozenset(content_types), scopes=tuple(scopes))

    @property
    def has_name_terms(self) -> bool:
        return any((
            self.exact, self.name_prefixes, self.fs_name_prefixes,
            self.name_words, self.name_contains, self.fs_name_contains,
        ))

    def accepts_content_type(self, content_type: str) -> bool:
        if content_type in self.excluded_content_types:
            return False
        return not self.content_types or content_type in self.content_types

    def in_scope(self, path: str) -> bool:
        if not self.scopes:
            return True
        return any(
            path == scope or path.startswith(scope.rstrip("/") + "/")
            for scope in self.scopes
        )

    def evaluate(self, item: IndexItem) -> bool:
        """Return True if item satisfies this predicate."""
        if not self.accepts_content_type(item.content_type):
            return False
        if not self.in_scope(item.path):
            return False
        if not self.has_name_terms:
            return True

        name = fold(item.display_name)
        fs_name = fold(item.fs_name)

        if any(name == fold(term) for term in self.exact):
            return True
        if any(name.startswith(fold(term)) for term in self.name_prefixes):
            return True
        if any(fs_name.startswith(fold(term)) for term in self.fs_name_prefixes):
            return True
        padded = f" {name} "
        if any(f" {fold(term)} " in padded for term in self.name_words):
            return True
        if any(fold(term) in name for term in self.name_contains):
            return True
        return any(fold(term) in fs_name for term in self.fs_name_contains)

    def to_spotlight(self) -> str:
        """Render as a Spotlight (mdfind) query string."""
        terms: list[str] = []
        terms += [f'kMDItemDisplayName == "{_escape(t)}"cd' for t in self.exact]
        terms += [f'kMDItemDisplayName == "{_escape(t)}*"cd' for t in self.name_prefixes]
        terms += [f'kMDItemFSName == "{_escape(t)}*"cd' for t in self.fs_name_prefixes]
        for word in self.name_words:
            w = _escape(word)
            terms += [
                f'kMDItemDisplayName == "* {w} *"cd',
                f'kMDItemDisplayName == "{w} *"cd',
                f'kMDItemDisplayName == "* {w}"cd',
            ]
        terms += [f'kMDItemDisplayName == "*{_escape(t)}*"cd' for t in self.name_contains]
        terms += [f'kMDItemFSName == "*{_escape(t)}*"cd' for t in self.fs_name_contains]

        clauses: list[str] = []
        if terms:
            clauses.append("(" + " || ".join(terms) + ")")
        if self.content_types:
            included = " || ".join(
                f'kMDItemContentType == "{_escape(t)}"' for t in sorted(self.content_types)
            )
            clauses.append(f"({included})")
        clauses += [
            f'kMDItemContentType != "{_escape(t)}"'
            for t in sorted(self.excluded_content_types)
        ]
        if not clauses:
            return 'kMDItemFSName == "*"'
        return " && ".join(clauses)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("*", "\\*")


Emit = Callable[[list[IndexItem]], None]
Producer = Callable[[Emit], Awaitable[None]]

_DONE = object()


class LiveQuery:
    """
    Handle for one running index query.

    The producer coroutine is scheduled immediately and pushes batches
    through the emit callback it is given. The channel is closed when the
    producer returns, fails, or is cancelled.
    """

    def __init__(self, producer: Producer, description: str = "query"):
        self.description = description
        self._queue: asyncio.Queue = asyncio.Queue()
        self._error: Optional[BaseException] = None
        self._closed = False
        self._task = asyncio.get_running_loop().create_task(self._run(producer))
        # Runs even when the task is cancelled before its first step
        self._task.add_done_callback(self._close_channel)

    async def _run(self, producer: Producer) -> None:
        try:
            await producer(self._queue.put_nowait)
        except asyncio.CancelledError:
            logger.debug(f"Live query cancelled: {self.description}")
            raise
        except Exception as e:
            self._error = e

    def _close_channel(self, task: asyncio.Task) -> None:
        self._queue.put_nowait(_DONE)

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Stop the producer. Batches already delivered stay valid."""
        if not self._task.done():
            self._task.cancel()

    async def batches(self):
        """Yield result batches until the producer finishes."""
        if self._closed:
            return
        while True:
            batch = await self._queue.get()
            if batch is _DONE:
                self._closed = True
                break
            yield batch
        if self._error is not None:
            raise QueryFailure(f"{self.description} failed: {self._error}") from self._error

    async def snapshot(self, timeout: Optional[float] = None) -> list[IndexItem]:
        """
        Collect every result into one list.

        Raises:
            LoadTimeout: deadline passed; carries the items gathered so far
            QueryFailure: the producer raised
        """
        items: list[IndexItem] = []

        async def drain():
            async for batch in self.batches():
                items.extend(batch)

        try:
            await asyncio.wait_for(drain(), timeout)
        except asyncio.TimeoutError:
            self.cancel()
            raise LoadTimeout(
                f"{self.description} timed out after {timeout}s", partial=items
            ) from None
        return items


class LiveIndex(ABC):
    """A platform index that can be queried with a predicate."""

    @abstractmethod
    def start_query(self, predicate: QueryPredicate) -> LiveQuery:
        """Start a query; must be called from a running event loop."""
        ...
