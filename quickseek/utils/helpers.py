"""
Helper utilities for quickseek.

Provides common functions used across the sources and the orchestrator:
- Settings loading
- Opening paths and desktop entries
- Clipboard copy
"""

import copy
import os
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

import toml
from loguru import logger

DEFAULT_SETTINGS: Dict[str, Any] = {
    "search": {
        "debounce_ms": 200,
        "source_timeout_ms": 1000,
    },
    "sources": {
        "applications": {
            "enabled": True,
            "mode": "automatic",
            "load_timeout_s": 20,
            "cache_size": 20,
            "directories": [],
            "excluded": ["quickseek"],
        },
        "files": {
            "enabled": True,
            "mode": "triggered",
            "backend": "auto",
            "locate_binary": "plocate",
            "limit": 500,
            "page_size": 20,
            "query_timeout_s": 3,
            "cache_ttl_s": 300,
            "scopes": [],
        },
        "shortcuts": {
            "enabled": True,
            "mode": "automatic",
            "list_command": ["shortcuts", "list"],
            "run_command": ["shortcuts", "run"],
            "list_timeout_s": 10,
        },
        "calculator": {
            "enabled": True,
            "mode": "automatic",
        },
    },
    "actions": {
        "opener": ["xdg-open"],
        "clipboard": ["wl-copy"],
    },
    "logging": {
        "level": "INFO",
    },
}


def default_settings_path() -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(config_home) / "quickseek" / "settings.toml"


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings from a TOML file.

    Args:
        path: Settings file; defaults to $XDG_CONFIG_HOME/quickseek/settings.toml

    Returns:
        Dictionary containing settings with defaults applied

    Example settings file:
        [search]
        debounce_ms = 150

        [sources.files]
        mode = "automatic"
        scopes = ["~/Documents"]
    """
    defaults = copy.deepcopy(DEFAULT_SETTINGS)
    settings_path = Path(path) if path is not None else default_settings_path()

    if not settings_path.exists():
        logger.debug(f"Settings file not found at {settings_path}, using defaults")
        return defaults

    try:
        loaded = toml.load(settings_path)
    except (OSError, toml.TomlDecodeError) as e:
        logger.warning(f"Could not load settings from {settings_path}: {e}. Using defaults")
        return defaults

    return _deep_merge(defaults, loaded)


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary with defaults
        override: Dictionary with overrides

    Returns:
        Merged dictionary (override takes precedence)
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _spawn(argv: list[str]) -> bool:
    try:
        subprocess.Popen(
            argv,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except FileNotFoundError:
        logger.warning(f"{argv[0]} not found, cannot run {argv}")
        return False
    except OSError as e:
        logger.warning(f"Could not run {argv}: {e}")
        return False
    return True


def open_path(path: str, opener=("xdg-open",)) -> bool:
    """
    Open a file, folder or application.

    Desktop entries are launched by id through gtk-launch; everything
    else goes to the opener command.

    Returns:
        True if the command was spawned
    """
    if not path:
        return False
    if path.endswith(".desktop"):
        return _spawn(["gtk-launch", os.path.basename(path)])
    return _spawn([*opener, path])


def copy_to_clipboard(text: str, command=("wl-copy",)) -> bool:
    """Copy text to the clipboard (wl-copy by default)."""
    return _spawn([*command, text])
