"""
Matcher - Relevance matching and scoring shared by every source.

Pure functions only. Scores are in [0, 100]:
  - 100: exact match (case-insensitive)
  - 80:  name starts with the query
  - 70:  some whitespace-delimited word starts with the query
  - CJK queries contained in the name: max(30, 65 - offset)
  - any other containment: max(10, 60 - 2 * offset)
  - 0:   no match

Han-script queries get substring matching at any length; Latin queries
only match as substrings once they are at least three characters long.
"""

import re
from datetime import datetime

from .result import SearchResult

# Unicode Han script blocks (radicals, ideographs, extensions, compatibility)
_HAN = re.compile(
    "["
    "⺀-⺙⺛-⻳⼀-⿕"
    "々〇〡-〩〸-〻"
    "㐀-䶿一-鿿豈-舘並-龎"
    "\U00016fe2\U00016fe3\U00016ff0\U00016ff1"
    "\U00020000-\U0002a6df\U0002a700-\U0002ebe0"
    "\U0002f800-\U0002fa1d\U00030000-\U0003134a"
    "]"
)

MIN_CONTAINS_LENGTH = 3


def contains_cjk(text: str) -> bool:
    """Return True if text contains any Han-script character."""
    return _HAN.search(text) is not None


def matches(name: str, query: str) -> bool:
    """Return True if name should be offered for query."""
    lower_name = name.lower()
    lower_query = query.lower()

    if lower_name == lower_query or lower_name.startswith(lower_query):
        return True

    # Ignore spaces between words ("visualstudio" finds "Visual Studio")
    name_compact = lower_name.replace(" ", "")
    query_compact = lower_query.replace(" ", "")
    if name_compact == query_compact or name_compact.startswith(query_compact):
        return True

    if any(word.startswith(lower_query) for word in lower_name.split()):
        return True

    if contains_cjk(query):
        return lower_query in lower_name

    return len(query) >= MIN_CONTAINS_LENGTH and lower_query in lower_name


def score(name: str, query: str) -> int:
    """Score how well name matches query, 0 to 100."""
    lower_name = name.lower()
    lower_query = query.lower()

    if lower_name == lower_query:
        return 100

    if lower_name.startswith(lower_query):
        return 80

    if any(word.startswith(lower_query) for word in lower_name.split()):
        return 70

    offset = lower_name.find(lower_query)
    if offset < 0:
        return 0

    if contains_cjk(query):
        return max(30, 65 - offset)

    return max(10, 60 - offset * 2)


def _recency_key(result: SearchResult) -> tuple:
    if result.last_used is None:
        return (1, 0.0, -result.relevance_score)
    return (0, -_timestamp(result.last_used), -result.relevance_score)


def _timestamp(value: datetime) -> float:
    return value.timestamp()


def sort_results(results: list[SearchResult]) -> list[SearchResult]:
    """
    Sort results for display within one source.

    Most recently used first (never-used last), then by relevance score.
    The sort is stable, so equal entries keep their incoming order.
    """
    return sorted(results, key=_recency_key)
