"""Host plugin management interface."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

import structlog

from noticeguard.options import OptionStore

logger = structlog.get_logger()

ACTIVE_PLUGINS_OPTION = "active_plugins"


class PluginHost(Protocol):
    def plugin_exists(self, plugin: str) -> bool: ...

    def active_plugins(self) -> list[str]: ...

    def activate_plugins(self, plugins: Iterable[str]) -> None: ...

    def deactivate_plugins(self, plugins: Iterable[str]) -> None: ...


class DirectoryPluginHost:
    """Plugins installed under a directory, active list kept in the option store.

    A plugin is identified by its path relative to ``plugin_dir``, for
    example ``code-snippets/code-snippets.php``.
    """

    def __init__(self, plugin_dir: str | Path, options: OptionStore) -> None:
        self.plugin_dir = Path(plugin_dir)
        self.options = options

    def plugin_exists(self, plugin: str) -> bool:
        return (self.plugin_dir / plugin).is_file()

    def active_plugins(self) -> list[str]:
        raw = self.options.get_option(ACTIVE_PLUGINS_OPTION)
        if not raw:
            return []
        try:
            plugins = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("active_plugins_option_corrupt", value=raw)
            return []
        return [str(plugin) for plugin in plugins]

    def activate_plugins(self, plugins: Iterable[str]) -> None:
        active = self.active_plugins()
        added = [plugin for plugin in plugins if plugin not in active]
        if not added:
            return
        self._store(active + added)
        logger.info("plugins_activated", plugins=added)

    def deactivate_plugins(self, plugins: Iterable[str]) -> None:
        targets = set(plugins)
        active = self.active_plugins()
        remaining = [plugin for plugin in active if plugin not in targets]
        if len(remaining) == len(active):
            return
        self._store(remaining)
        logger.info("plugins_deactivated", plugins=sorted(targets & set(active)))

    def _store(self, plugins: list[str]) -> None:
        self.options.update_option(ACTIVE_PLUGINS_OPTION, json.dumps(plugins))
