"""
Source Registry - The contract every search source implements.

Each source declares a name, a priority (lower = dispatched first and
listed first when merging) and a mode. Automatic sources receive every
query; triggered sources only run when the user asks for them.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from quickseek.search.result import SearchResult


class SourceMode(str, Enum):
    AUTOMATIC = "automatic"
    TRIGGERED = "triggered"


class SearchSource(ABC):
    """Base class for all search sources."""

    name: str = "source"
    priority: int = 100
    mode: SourceMode = SourceMode.AUTOMATIC
    paged: bool = False

    @abstractmethod
    async def search(self, query: str) -> list[SearchResult]:
        """Return results for the query. Must not raise for bad input."""
        ...

    async def start(self) -> None:
        """Preload whatever catalog the source needs."""

    def close(self) -> None:
        """Release background work."""


class SourceRegistry:
    """Holds sources in priority order and tracks which are enabled."""

    def __init__(self, sources: Optional[list[SearchSource]] = None, disabled=()):
        self._sources: list[SearchSource] = []
        self._disabled: set[str] = set(disabled)
        for source in sources or []:
            self.register(source)

    def register(self, source: SearchSource) -> None:
        """Register a source and re-sort by priority."""
        if self.get(source.name) is not None:
            raise ValueError(f"Duplicate source name: {source.name}")
        self._sources.append(source)
        self._sources.sort(key=lambda s: s.priority)

    def get(self, name: str) -> Optional[SearchSource]:
        for source in self._sources:
            if source.name == name:
                return source
        return None

    def set_enabled(self, name: str, enabled: bool) -> None:
        if enabled:
            self._disabled.discard(name)
        else:
            self._disabled.add(name)

    def is_enabled(self, name: str) -> bool:
        return name not in self._disabled

    def all(self) -> list[SearchSource]:
        return list(self._sources)

    def automatic(self) -> list[SearchSource]:
        """Enabled sources that run on every query, in priority order."""
        return [
            s for s in self._sources
            if s.mode == SourceMode.AUTOMATIC and self.is_enabled(s.name)
        ]
