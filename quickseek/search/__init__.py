"""
Search package - Sources, matching and the orchestrator.

A query is debounced, dispatched to every enabled source concurrently,
then merged into one categorized result list.
"""

from .orchestrator import SearchOrchestrator, SearchState, SearchUpdate
from .result import ResultCategory, ResultType, SearchResult, categorize
from .router import SearchSource, SourceMode, SourceRegistry

__all__ = [
    "SearchOrchestrator",
    "SearchState",
    "SearchUpdate",
    "ResultCategory",
    "ResultType",
    "SearchResult",
    "categorize",
    "SearchSource",
    "SourceMode",
    "SourceRegistry",
]
