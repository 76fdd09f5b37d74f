"""
Search Orchestrator - Debounce, fan out, merge, deliver.

Each keystroke restarts a short debounce timer. When it fires, the query
gets a new generation number and is sent to every enabled automatic
source at once. The orchestrator waits for all of them or for the
per-source soft cap, whichever comes first; a source still running past
the cap contributes nothing this round but is left to finish (and fill
its cache). Results belonging to an older generation are never
delivered.

State per generation:
    idle -> debouncing -> dispatched -> merging -> delivered
with cancelled reachable from debouncing and dispatched when a newer
query supersedes it.
"""

import asyncio
import functools
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from quickseek.search.result import ResultCategory, ResultType, SearchResult, categorize
from quickseek.search.router import SearchSource, SourceRegistry
from quickseek.utils.helpers import copy_to_clipboard, open_path

OPENABLE_TYPES = frozenset({
    ResultType.APPLICATION,
    ResultType.FILE,
    ResultType.FOLDER,
    ResultType.DOCUMENT,
})


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    DISPATCHED = "dispatched"
    MERGING = "merging"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SearchUpdate:
    """One consolidated result set, pushed once per delivered generation."""
    generation: int
    query: str
    results: tuple[SearchResult, ...]
    categories: tuple[ResultCategory, ...]
    is_searching: bool


@dataclass
class Actions:
    """System commands used when a result is executed."""
    opener: tuple[str, ...] = ("xdg-open",)
    clipboard: tuple[str, ...] = ("wl-copy",)

    def open(self, path: str) -> bool:
        return open_path(path, self.opener)

    def copy(self, text: str) -> bool:
        return copy_to_clipboard(text, self.clipboard)


Subscriber = Callable[[SearchUpdate], None]


class SearchOrchestrator:
    """Owns the single source of truth for the current query's results."""

    def __init__(
        self,
        sources: list[SearchSource],
        debounce_ms: int = 200,
        source_timeout: float = 1.0,
        disabled=(),
        actions: Optional[Actions] = None,
    ):
        self.registry = SourceRegistry(sources, disabled=disabled)
        self.debounce = debounce_ms / 1000
        self.source_timeout = source_timeout
        self.actions = actions or Actions()

        self.state = SearchState.IDLE
        self.generation = 0
        self.query = ""
        self.results: list[SearchResult] = []
        self.categories: list[ResultCategory] = []
        self.is_searching = False

        self._generation_lock = threading.Lock()
        self._per_source: dict[str, list[SearchResult]] = {}
        self._pages: dict[str, dict[int, list[SearchResult]]] = {}
        self._replays: dict[str, tuple[str, list[SearchResult]]] = {}
        self._task: Optional[asyncio.Task] = None
        self._background: set[asyncio.Future] = set()
        self._subscribers: list[Subscriber] = []

        for source in self.registry.all():
            add_listener = getattr(source, "add_listener", None)
            if add_listener is not None:
                add_listener(functools.partial(self._on_replay, source.name))

    # Subscription

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Receive every delivered update. Returns an unsubscribe function."""
        self._subscribers.append(subscriber)

        def unsubscribe():
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
        return unsubscribe

    # Query lifecycle

    def search(self, text: str) -> Optional[asyncio.Task]:
        """
        Start (or restart) a search for text.

        Empty text clears everything immediately. Otherwise the previous
        debounce or dispatch is cancelled and a new one scheduled.

        Returns:
            The debounce/dispatch task, or None for empty text
        """
        self._cancel_current()

        if not text or not text.strip():
            self._clear()
            return None

        self.query = text
        self.is_searching = True
        self.state = SearchState.DEBOUNCING
        self._task = asyncio.ensure_future(self._debounce_and_dispatch(text))
        return self._task

    def _cancel_current(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.state = SearchState.CANCELLED
            logger.debug(f"Cancelled search for {self.query!r}")
        self._task = None

    def _next_generation(self) -> int:
        with self._generation_lock:
            self.generation += 1
            return self.generation

    def _is_current(self, generation: int) -> bool:
        with self._generation_lock:
            return generation == self.generation

    def _clear(self) -> None:
        generation = self._next_generation()
        self.query = ""
        self._per_source = {}
        self._pages = {}
        self._replays = {}
        self.state = SearchState.IDLE
        self._deliver(generation)

    async def _debounce_and_dispatch(self, text: str) -> None:
        await asyncio.sleep(self.debounce)

        generation = self._next_generation()
        self.state = SearchState.DISPATCHED
        sources = self.registry.automatic()
        logger.debug(f"Generation {generation}: {text!r} -> {[s.name for s in sources]}")

        tasks = {}
        for source in sources:
            task = asyncio.ensure_future(self._run_source(source, text))
            self._keep(task)
            tasks[task] = source

        done, pending = set(), set()
        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=self.source_timeout)

        if not self._is_current(generation):
            logger.debug(f"Discarding stale generation {generation}")
            return

        self.state = SearchState.MERGING
        for task in pending:
            logger.warning(
                f"Source {tasks[task].name} did not answer {text!r} within {self.source_timeout}s"
            )

        key = text.lower()
        per_source = {}
        for task in done:
            name = tasks[task].name
            results = task.result()
            replay = self._replays.get(name)
            if not results and replay is not None and replay[0] == key:
                results = replay[1]
            per_source[name] = results

        self._per_source = per_source
        self._pages = {name: {0: list(results)} for name, results in per_source.items()}
        self._deliver(generation)

    async def _run_source(self, source: SearchSource, text: str, **kwargs) -> list[SearchResult]:
        try:
            return list(await source.search(text, **kwargs))
        except Exception:
            logger.exception(f"Source {source.name} failed for {text!r}")
            return []

    def _keep(self, task: asyncio.Future) -> None:
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # Merge and delivery

    def _merge(self) -> list[SearchResult]:
        merged: list[SearchResult] = []
        for source in self.registry.all():
            merged.extend(self._per_source.get(source.name, ()))
        return merged

    def _set_page(self, source_name: str, page: int, results: list[SearchResult]) -> None:
        """Store one page of a source's results; page 0 drops the others."""
        pages = self._pages.setdefault(source_name, {})
        if page == 0:
            pages.clear()
        pages[page] = list(results)
        self._per_source[source_name] = [r for number in sorted(pages) for r in pages[number]]

    def _deliver(self, generation: int) -> bool:
        if not self._is_current(generation):
            return False

        self.results = self._merge()
        self.categories = categorize(self.results)
        self.is_searching = False
        if self.query:
            self.state = SearchState.DELIVERED

        update = SearchUpdate(
            generation=generation,
            query=self.query,
            results=tuple(self.results),
            categories=tuple(self.categories),
            is_searching=self.is_searching,
        )
        for subscriber in list(self._subscribers):
            try:
                subscriber(update)
            except Exception:
                logger.exception("Search subscriber failed")
        return True

    def _on_replay(self, source_name: str, key: str, results: list[SearchResult]) -> None:
        """A source answered a query it had queued during a catalog load."""
        if not self.query or self.query.lower() != key:
            return
        self._replays[source_name] = (key, list(results))
        if self.state == SearchState.DELIVERED:
            self._set_page(source_name, 0, results)
            self._deliver(self.generation)

    async def trigger_search(
        self, source_name: str, text: Optional[str] = None, page: int = 0
    ) -> list[SearchResult]:
        """
        Run one source on demand (file search, "load more").

        Page 0 replaces that source's results; later pages are kept by
        number, so repeating or reordering pages never duplicates results.
        The merged list is republished unless the query moved on.

        Returns:
            The results of this call
        """
        source = self.registry.get(source_name)
        if source is None or not self.registry.is_enabled(source_name):
            logger.debug(f"Trigger for unknown or disabled source {source_name!r}")
            return []

        text = self.query if text is None else text
        if not text or not text.strip():
            return []

        generation = self.generation
        if page:
            if not getattr(source, "paged", False):
                return []
            results = await self._run_source(source, text, page=page)
        else:
            results = await self._run_source(source, text)

        if text != self.query or not self._is_current(generation):
            return results

        self._set_page(source_name, page, results)
        self._deliver(generation)
        return results

    # Actions

    def execute(self, result: SearchResult) -> bool:
        """
        Act on a selected result.

        Returns:
            True if an action was taken
        """
        if result.type in OPENABLE_TYPES:
            return self.actions.open(result.path)

        if result.type == ResultType.SHORTCUT:
            source = self.registry.get("shortcuts")
            if source is None:
                logger.warning("No shortcut source to run result")
                return False
            return source.execute(result)

        if result.type == ResultType.CALCULATOR:
            return self.actions.copy(result.calculation_result or result.subtitle)

        logger.debug(f"No action for {result.type.value} result {result.name!r}")
        return False

    # Startup and shutdown

    async def start(self) -> None:
        """Preload source catalogs concurrently."""
        sources = [s for s in self.registry.all() if self.registry.is_enabled(s.name)]
        outcomes = await asyncio.gather(*(s.start() for s in sources), return_exceptions=True)
        for source, outcome in zip(sources, outcomes):
            if isinstance(outcome, Exception):
                logger.opt(exception=outcome).error(f"Source {source.name} failed to start")

    def close(self) -> None:
        self._cancel_current()
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        for source in self.registry.all():
            source.close()
