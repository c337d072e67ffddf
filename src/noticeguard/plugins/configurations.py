"""
Per-environment plugin activation and deactivation lists.

Defaults can be overridden from a YAML file shaped like the defaults::

    deactivate:
      production:
        - code-snippets/code-snippets.php
    activate:
      staging:
        - code-snippets/code-snippets.php

Environments present in the file replace the default list for that
environment; environments absent from it keep their defaults.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
import yaml

from noticeguard.core.errors import ConfigurationError

logger = structlog.get_logger()

ACTIVATE = "activate"
DEACTIVATE = "deactivate"
ENVIRONMENTS = ("production", "staging", "development", "local")

DEFAULT_CONFIGURATION: dict[str, dict[str, list[str]]] = {
    DEACTIVATE: {
        "production": ["code-snippets/code-snippets.php"],
        "staging": [],
        "development": [],
        "local": [],
    },
    ACTIVATE: {
        "production": [],
        "staging": ["code-snippets/code-snippets.php"],
        "development": [],
        "local": [],
    },
}


def load_overrides(path: str | Path) -> dict[str, dict[str, list[str]]]:
    """Read an overrides file. Raises ConfigurationError when malformed."""
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(
            "Cannot read plugin configuration", details={"path": str(path)}
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            "Invalid plugin configuration YAML", details={"path": str(path)}
        ) from exc

    if not isinstance(data, dict):
        raise ConfigurationError(
            "Plugin configuration must be a mapping", details={"path": str(path)}
        )

    overrides: dict[str, dict[str, list[str]]] = {}
    for kind, environments in data.items():
        if kind not in (ACTIVATE, DEACTIVATE):
            raise ConfigurationError(
                "Unknown plugin configuration section", details={"section": kind}
            )
        if not isinstance(environments, dict):
            raise ConfigurationError(
                "Plugin configuration section must map environments to lists",
                details={"section": kind},
            )
        unknown = sorted(str(env) for env in environments if env not in ENVIRONMENTS)
        if unknown:
            logger.warning(
                "plugin_configuration_unknown_environments", section=kind, environments=unknown
            )
        overrides[kind] = {
            str(env): [str(plugin) for plugin in (plugins or [])]
            for env, plugins in environments.items()
        }

    logger.debug("plugin_configuration_loaded", path=str(path))
    return overrides


class PluginConfigurations:
    """Resolves which plugins to activate or deactivate in an environment."""

    def __init__(
        self,
        overrides_path: str | Path | None = None,
        plugin_exists: Callable[[str], bool] | None = None,
    ) -> None:
        self.overrides_path = overrides_path
        self.plugin_exists = plugin_exists or (lambda _plugin: True)
        self._configuration: dict[str, dict[str, list[str]]] = {}

    def set_configuration(self) -> None:
        configuration = copy.deepcopy(DEFAULT_CONFIGURATION)
        if self.overrides_path:
            for kind, environments in load_overrides(self.overrides_path).items():
                configuration.setdefault(kind, {}).update(environments)
        self._configuration = configuration

    @property
    def configuration(self) -> dict[str, dict[str, list[str]]]:
        if not self._configuration:
            self.set_configuration()
        return self._configuration

    def get_configuration(self, kind: str = DEACTIVATE, env: str = "production") -> list[str]:
        """Plugins listed for ``kind`` in ``env`` that are actually installed."""
        plugins = self.configuration.get(kind, {}).get(env, [])
        return [plugin for plugin in plugins if self.plugin_exists(plugin)]
