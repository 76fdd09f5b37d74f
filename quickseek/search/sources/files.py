"""
File Source - Paginated search over the live file index.

Files are never snapshotted up front; each distinct query runs one live
index query and the complete, sorted result set is cached for five
minutes so "load more" pages come from memory. Callers asking for the
same uncached query at once share a single index query.
"""

import asyncio
import os
import time
from typing import Callable, Optional

from loguru import logger

from quickseek.errors import LoadTimeout, QueryFailure
from quickseek.search.cache import QueryCache
from quickseek.search.matcher import score, sort_results
from quickseek.search.result import (
    CATEGORY_DOCUMENTS,
    CATEGORY_FILES,
    CATEGORY_FOLDERS,
    CATEGORY_OTHER_APPLICATIONS,
    ResultType,
    SearchResult,
)
from quickseek.search.router import SearchSource, SourceMode
from quickseek.services.icons import icon_for_path
from quickseek.services.live_query import (
    APPLICATION_CONTENT_TYPES,
    IndexItem,
    LiveIndex,
    QueryPredicate,
)

DOCUMENT_EXTENSIONS = frozenset({
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
    "txt", "rtf", "csv", "pages", "numbers", "key", "md",
})


def classify(item: IndexItem) -> tuple[ResultType, str]:
    """Result type and category for an index hit."""
    if item.path.endswith(".app") or item.content_type in APPLICATION_CONTENT_TYPES:
        return ResultType.APPLICATION, CATEGORY_OTHER_APPLICATIONS
    if item.is_directory:
        return ResultType.FOLDER, CATEGORY_FOLDERS
    extension = os.path.splitext(item.path)[1].lstrip(".").lower()
    if extension in DOCUMENT_EXTENSIONS:
        return ResultType.DOCUMENT, CATEGORY_DOCUMENTS
    return ResultType.FILE, CATEGORY_FILES


class FileSource(SearchSource):
    """Search files through a LiveIndex."""

    name = "files"
    priority = 40
    mode = SourceMode.TRIGGERED
    paged = True

    def __init__(
        self,
        index: LiveIndex,
        page_size: int = 20,
        query_timeout: float = 3.0,
        cache_ttl: float = 300.0,
        scopes: tuple[str, ...] = (),
        clock: Callable[[], float] = time.monotonic,
        mode: Optional[SourceMode] = None,
    ):
        self.index = index
        self.page_size = page_size
        self.query_timeout = query_timeout
        self.scopes = tuple(os.path.expanduser(s) for s in scopes)
        if mode is not None:
            self.mode = SourceMode(mode)

        self._cache = QueryCache(ttl=cache_ttl, clock=clock)
        self._inflight: dict[str, asyncio.Future] = {}

    async def search(self, query: str, page: int = 0) -> list[SearchResult]:
        """
        Return one page of results.

        Args:
            query: Search text
            page: Zero-based page number

        Returns:
            Up to page_size results; empty past the last page.
        """
        if page < 0:
            raise ValueError(f"page must be >= 0, got {page}")
        if not query or not query.strip():
            return []

        results = await self.search_all(query)
        start = page * self.page_size
        return results[start:start + self.page_size]

    def total(self, query: str) -> Optional[int]:
        """Size of the cached full result set, or None if not cached."""
        cached = self._cache.get(query.strip().lower())
        return None if cached is None else len(cached)

    async def search_all(self, query: str) -> list[SearchResult]:
        query = query.strip()
        key = query.lower()

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"File cache hit: {key!r}")
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run_query(query, key))
            self._inflight[key] = task

            def forget(done, key=key):
                if self._inflight.get(key) is done:
                    del self._inflight[key]
            task.add_done_callback(forget)

        return await asyncio.shield(task)

    async def _run_query(self, query: str, key: str) -> list[SearchResult]:
        predicate = QueryPredicate.for_name(query, scopes=self.scopes)
        live = self.index.start_query(predicate)

        try:
            items = await live.snapshot(self.query_timeout)
        except LoadTimeout as e:
            logger.warning(
                f"File query for {query!r} timed out, returning {len(e.partial)} partial results"
            )
            return self._to_results(e.partial, query)
        except QueryFailure as e:
            logger.warning(f"File query for {query!r} failed: {e}")
            return []

        results = self._to_results(items, query)
        self._cache.put(key, results)
        logger.debug(f"File query {query!r}: {len(results)} results")
        return results

    def _to_results(self, items: list[IndexItem], query: str) -> list[SearchResult]:
        results = []
        seen: set[str] = set()
        for item in items:
            if item.path in seen:
                continue
            seen.add(item.path)
            result_type, category = classify(item)
            results.append(SearchResult(
                name=item.display_name,
                path=item.path,
                type=result_type,
                category=category,
                icon=icon_for_path(item.path, item.is_directory),
                subtitle=item.path,
                last_used=item.last_used,
                relevance_score=score(item.display_name, query),
            ))
        return sort_results(results)

    def clear_cache(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        for task in list(self._inflight.values()):
            task.cancel()
        self._inflight.clear()
