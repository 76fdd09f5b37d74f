"""
Search sources - Independent providers of results.

Each source answers a query with its own scored, sorted results.
"""

from .applications import AppInfo, ApplicationSource
from .calculator import CalculatorSource, ExpressionEngine
from .files import FileSource
from .shortcuts import ShortcutSource

__all__ = [
    "AppInfo",
    "ApplicationSource",
    "CalculatorSource",
    "ExpressionEngine",
    "FileSource",
    "ShortcutSource",
]
