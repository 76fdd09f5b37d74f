"""
Search results - The value type every source returns.

Results are immutable and compared by id only. Categories group results
for presentation and are ordered by a fixed priority table, with the
calculator always first.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ResultType(str, Enum):
    APPLICATION = "application"
    FILE = "file"
    FOLDER = "folder"
    DOCUMENT = "document"
    SHORTCUT = "shortcut"
    CALCULATOR = "calculator"
    SYSTEM = "system"
    SUGGESTION = "suggestion"
    AI = "ai"


CATEGORY_CALCULATOR = "Calculator"
CATEGORY_APPLICATIONS = "Applications"
CATEGORY_SYSTEM = "System Settings"
CATEGORY_SHORTCUTS = "Shortcuts"
CATEGORY_DOCUMENTS = "Documents"
CATEGORY_FILES = "Recent Files"
CATEGORY_OTHER_APPLICATIONS = "Other Applications"
CATEGORY_FOLDERS = "Folders"
CATEGORY_SUGGESTIONS = "Suggestions"

CATEGORY_ORDER = {
    CATEGORY_CALCULATOR: -1,
    CATEGORY_APPLICATIONS: 0,
    CATEGORY_SYSTEM: 1,
    CATEGORY_SHORTCUTS: 2,
    CATEGORY_DOCUMENTS: 3,
    CATEGORY_FILES: 4,
    CATEGORY_OTHER_APPLICATIONS: 5,
    CATEGORY_FOLDERS: 6,
    CATEGORY_SUGGESTIONS: 7,
}
DEFAULT_CATEGORY_ORDER = 100


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, eq=False)
class SearchResult:
    """A single search result from any source."""
    name: str
    path: str = ""
    type: ResultType = ResultType.APPLICATION
    category: str = ""
    icon: str = "image-missing"
    subtitle: str = ""
    last_used: Optional[datetime] = None
    relevance_score: int = 0
    formula: Optional[str] = None
    calculation_result: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def __eq__(self, other):
        if not isinstance(other, SearchResult):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass(frozen=True)
class ResultCategory:
    """Results sharing one category, in merge order."""
    title: str
    results: tuple[SearchResult, ...]

    @property
    def order(self) -> int:
        return category_order(self.title)


def category_order(title: str) -> int:
    return CATEGORY_ORDER.get(title, DEFAULT_CATEGORY_ORDER)


def categorize(results: list[SearchResult]) -> list[ResultCategory]:
    """
    Group results by category and sort the groups by display priority.

    Args:
        results: Merged results from all sources

    Returns:
        Categories ordered by the priority table, ties broken by title.
    """
    grouped: dict[str, list[SearchResult]] = {}
    for result in results:
        grouped.setdefault(result.category, []).append(result)

    categories = [
        ResultCategory(title=title, results=tuple(items))
        for title, items in grouped.items()
    ]
    categories.sort(key=lambda c: (c.order, c.title))
    return categories
