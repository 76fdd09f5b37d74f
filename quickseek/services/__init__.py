# quickseek Services Package
"""
Platform services: live indexes and icon lookup.
"""

from .applications import DesktopEntryIndex
from .files import LocateIndex, SpotlightIndex, default_file_index
from .icons import IconResolver, glyph_icon, icon_for_path
from .live_query import IndexItem, LiveIndex, LiveQuery, QueryPredicate

__all__ = [
    "DesktopEntryIndex",
    "LocateIndex",
    "SpotlightIndex",
    "default_file_index",
    "IconResolver",
    "glyph_icon",
    "icon_for_path",
    "IndexItem",
    "LiveIndex",
    "LiveQuery",
    "QueryPredicate",
]
