# quickseek Utilities Package
"""
Shared utility functions and helpers.
"""

from .helpers import copy_to_clipboard, load_settings, open_path

__all__ = ["copy_to_clipboard", "load_settings", "open_path"]
