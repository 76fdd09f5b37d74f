"""
Application Source - Search the installed application catalog.

The catalog is built from one live index query and swapped in wholesale;
searches only ever read a complete list. Queries that arrive while the
catalog is loading are queued and replayed to listeners once it is ready,
so an early keystroke still gets its results.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from quickseek.errors import LoadTimeout, QueryFailure
from quickseek.search.cache import QueryCache
from quickseek.search.matcher import matches, score, sort_results
from quickseek.search.result import CATEGORY_APPLICATIONS, ResultType, SearchResult
from quickseek.search.router import SearchSource, SourceMode
from quickseek.services.icons import IconResolver
from quickseek.services.live_query import (
    APPLICATION_CONTENT_TYPES,
    IndexItem,
    LiveIndex,
    QueryPredicate,
)

DEFAULT_APP_ICON = "application-x-executable"

Listener = Callable[[str, list[SearchResult]], None]


@dataclass
class AppInfo:
    """One installed application."""
    name: str
    localized_names: list[str] = field(default_factory=list)
    path: str = ""
    bundle_id: Optional[str] = None
    icon: str = DEFAULT_APP_ICON
    last_used: Optional[datetime] = None

    @property
    def names(self) -> list[str]:
        return [self.name, *(n for n in self.localized_names if n != self.name)]


def _dedupe(names) -> list[str]:
    return list(dict.fromkeys(n for n in names if n))


class ApplicationSource(SearchSource):
    """Match queries against installed applications."""

    name = "applications"
    priority = 10
    mode = SourceMode.AUTOMATIC

    def __init__(
        self,
        index: LiveIndex,
        icon_resolver: Optional[IconResolver] = None,
        load_timeout: float = 20.0,
        cache_size: int = 20,
        excluded_names=("quickseek",),
        directories: tuple[str, ...] = (),
        mode: Optional[SourceMode] = None,
    ):
        self.index = index
        self.icon_resolver = icon_resolver
        self.load_timeout = load_timeout
        self.excluded_names = {n.lower() for n in excluded_names}
        self.directories = tuple(directories)
        if mode is not None:
            self.mode = SourceMode(mode)

        self._apps: list[AppInfo] = []
        self._apps_lock = threading.Lock()
        self._cache = QueryCache(max_entries=cache_size)
        self._loaded = False
        self._loading: Optional[asyncio.Task] = None
        self._pending: list[str] = []
        self._listeners: list[Listener] = []

    @property
    def apps(self) -> list[AppInfo]:
        with self._apps_lock:
            return list(self._apps)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def is_loading(self) -> bool:
        return self._loading is not None and not self._loading.done()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback for replayed queries.

        The callback receives (lowercased query, results) whenever a query
        that arrived during a load is answered. Returns an unsubscribe
        function.
        """
        self._listeners.append(listener)

        def remove():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return remove

    async def start(self) -> None:
        await self.load()

    async def load(self) -> list[AppInfo]:
        """Build the catalog. Concurrent callers share one load."""
        if not self.is_loading:
            self._loading = asyncio.ensure_future(self._load())
        return await asyncio.shield(self._loading)

    refresh = load

    async def _load(self) -> list[AppInfo]:
        predicate = QueryPredicate.for_content_types(
            APPLICATION_CONTENT_TYPES, scopes=self.directories
        )
        query = self.index.start_query(predicate)

        try:
            items = await query.snapshot(self.load_timeout)
        except LoadTimeout as e:
            logger.warning(
                f"Application catalog load timed out, using {len(e.partial)} partial entries"
            )
            items = e.partial
        except QueryFailure as e:
            logger.warning(f"Application catalog load failed, keeping previous catalog: {e}")
            self._replay()
            return self.apps

        apps = [app for app in (self._to_app(item) for item in items) if app is not None]
        with self._apps_lock:
            self._apps = apps
            self._loaded = True
        self._cache.clear()
        logger.info(f"Loaded {len(apps)} applications")

        self._replay()
        return apps

    def _to_app(self, item: IndexItem) -> Optional[AppInfo]:
        name = item.display_name
        if name.endswith(".app"):
            name = name[:-len(".app")]
        if not name or name.lower() in self.excluded_names:
            return None

        icon = item.attributes.get("icon") or DEFAULT_APP_ICON
        if self.icon_resolver is not None:
            icon = self.icon_resolver.resolve_or_name(icon)

        return AppInfo(
            name=name,
            localized_names=_dedupe([*item.attributes.get("localized_names", ()), name]),
            path=item.path,
            bundle_id=item.attributes.get("desktop_id") or item.attributes.get("bundle_id"),
            icon=icon,
            last_used=item.last_used,
        )

    def _replay(self) -> None:
        pending, self._pending = self._pending, []
        for key in dict.fromkeys(pending):
            results = self._search_catalog(key)
            if self._loaded:
                self._cache.put(key, results)
            for listener in list(self._listeners):
                try:
                    listener(key, results)
                except Exception:
                    logger.exception(f"Application listener failed for {key!r}")

    async def search(self, query: str) -> list[SearchResult]:
        if not query or not query.strip():
            self._cache.clear()
            return []

        key = query.lower()
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Application cache hit: {key!r}")
            return cached

        if self.is_loading or not self._loaded:
            if key not in self._pending:
                self._pending.append(key)
            if not self.is_loading:
                logger.debug("Application catalog not loaded, starting background load")
                self._loading = asyncio.ensure_future(self._load())
            return []

        results = self._search_catalog(key)
        self._cache.put(key, results)
        return results

    def _search_catalog(self, query: str) -> list[SearchResult]:
        results = []
        for app in self.apps:
            names = app.names
            if not any(matches(n, query) for n in names):
                continue
            results.append(SearchResult(
                name=app.name,
                path=app.path,
                type=ResultType.APPLICATION,
                category=CATEGORY_APPLICATIONS,
                icon=app.icon,
                subtitle=app.bundle_id or "",
                last_used=app.last_used,
                relevance_score=max(score(n, query) for n in names),
            ))
        return sort_results(results)

    def close(self) -> None:
        if self.is_loading:
            self._loading.cancel()
        self._pending.clear()
