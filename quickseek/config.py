"""
quickseek - Composition root

Builds the sources and the orchestrator from settings. Nothing here is a
process-wide singleton: every call returns a fresh, independent graph.

Usage:
  settings = load_settings()
  configure_logging(settings["logging"]["level"])
  orchestrator = create_orchestrator(settings)
  await orchestrator.start()
"""

import sys
from typing import Any, Dict, Optional

from loguru import logger

from quickseek.search.orchestrator import Actions, SearchOrchestrator
from quickseek.search.router import SearchSource
from quickseek.search.sources import (
    ApplicationSource,
    CalculatorSource,
    FileSource,
    ShortcutSource,
)
from quickseek.services.applications import DesktopEntryIndex
from quickseek.services.files import LocateIndex, SpotlightIndex, default_file_index
from quickseek.services.icons import IconResolver
from quickseek.services.live_query import LiveIndex
from quickseek.utils.helpers import DEFAULT_SETTINGS, _deep_merge

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default sink with a single stderr sink."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


def _file_index(cfg: Dict[str, Any]) -> LiveIndex:
    backend = cfg.get("backend", "auto")
    limit = int(cfg.get("limit", 500))
    if backend == "locate":
        return LocateIndex(binary=cfg.get("locate_binary", "plocate"), limit=limit)
    if backend == "spotlight":
        return SpotlightIndex(limit=limit)
    if backend != "auto":
        logger.warning(f"Unknown file backend {backend!r}, picking one for this platform")
    return default_file_index(locate_binary=cfg.get("locate_binary", "plocate"), limit=limit)


def create_sources(
    settings: Dict[str, Any],
    app_index: Optional[LiveIndex] = None,
    file_index: Optional[LiveIndex] = None,
    icon_resolver: Optional[IconResolver] = None,
) -> list[SearchSource]:
    """Build one instance of every source, enabled or not."""
    cfg = settings["sources"]
    icons = icon_resolver or IconResolver()

    apps_cfg = cfg["applications"]
    files_cfg = cfg["files"]
    shortcuts_cfg = cfg["shortcuts"]

    return [
        CalculatorSource(mode=cfg["calculator"].get("mode")),
        ApplicationSource(
            index=app_index or DesktopEntryIndex(apps_cfg.get("directories") or None),
            icon_resolver=icons,
            load_timeout=float(apps_cfg["load_timeout_s"]),
            cache_size=int(apps_cfg["cache_size"]),
            excluded_names=apps_cfg.get("excluded", ()),
            mode=apps_cfg.get("mode"),
        ),
        ShortcutSource(
            list_command=shortcuts_cfg["list_command"],
            run_command=shortcuts_cfg["run_command"],
            icon_resolver=icons,
            list_timeout=float(shortcuts_cfg["list_timeout_s"]),
            mode=shortcuts_cfg.get("mode"),
        ),
        FileSource(
            index=file_index or _file_index(files_cfg),
            page_size=int(files_cfg["page_size"]),
            query_timeout=float(files_cfg["query_timeout_s"]),
            cache_ttl=float(files_cfg["cache_ttl_s"]),
            scopes=tuple(files_cfg.get("scopes", ())),
            mode=files_cfg.get("mode"),
        ),
    ]


def create_orchestrator(
    settings: Optional[Dict[str, Any]] = None,
    app_index: Optional[LiveIndex] = None,
    file_index: Optional[LiveIndex] = None,
    icon_resolver: Optional[IconResolver] = None,
) -> SearchOrchestrator:
    """
    Wire sources, actions and timing into an orchestrator.

    Args:
        settings: Output of load_settings(); partial dicts are merged
            over the defaults
        app_index: Application index override (defaults to desktop entries)
        file_index: File index override (defaults to plocate/mdfind)
        icon_resolver: Shared icon resolver

    Returns:
        A ready-to-start SearchOrchestrator
    """
    settings = _deep_merge(DEFAULT_SETTINGS, settings or {})

    sources = create_sources(settings, app_index, file_index, icon_resolver)
    disabled = [
        name for name, cfg in settings["sources"].items()
        if not cfg.get("enabled", True)
    ]

    search_cfg = settings["search"]
    actions_cfg = settings["actions"]
    orchestrator = SearchOrchestrator(
        sources,
        debounce_ms=int(search_cfg["debounce_ms"]),
        source_timeout=int(search_cfg["source_timeout_ms"]) / 1000,
        disabled=disabled,
        actions=Actions(
            opener=tuple(actions_cfg["opener"]),
            clipboard=tuple(actions_cfg["clipboard"]),
        ),
    )
    logger.debug(
        f"Orchestrator ready: {[s.name for s in orchestrator.registry.automatic()]} automatic, "
        f"disabled={disabled}"
    )
    return orchestrator
