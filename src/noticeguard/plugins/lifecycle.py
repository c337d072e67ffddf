"""
Plugin lifecycle hooks run at bootstrap.

Both classes attach to ``muplugins_loaded``; activation also owns the
schema migration, which runs first (priority 1) so the notice tables
exist before anything else touches them.
"""

from __future__ import annotations

from typing import Any

import structlog

from noticeguard.notices.migration import SchemaMigrator
from noticeguard.plugins.configurations import ACTIVATE, DEACTIVATE, PluginConfigurations
from noticeguard.plugins.host import PluginHost

logger = structlog.get_logger()

BOOTSTRAP_PHASE = "muplugins_loaded"
MIGRATION_PRIORITY = 1
LIFECYCLE_PRIORITY = 10


class PluginActivation:
    def __init__(
        self,
        host: PluginHost,
        configurations: PluginConfigurations,
        migrator: SchemaMigrator | None = None,
    ) -> None:
        self.host = host
        self.configurations = configurations
        self.migrator = migrator

    def register(self, registry: Any) -> None:
        registry.add(BOOTSTRAP_PHASE, self.check_plugins, LIFECYCLE_PRIORITY)
        if self.migrator is not None:
            registry.add(BOOTSTRAP_PHASE, self.run_database_migrations, MIGRATION_PRIORITY)

    def run_database_migrations(self, *_args: Any) -> bool:
        if self.migrator is None or not self.migrator.needs_migration():
            return True
        return self.migrator.run_migrations()

    def check_plugins(self, environment: str) -> list[str]:
        """Activate the plugins configured for ``environment``."""
        plugins = self.configurations.get_configuration(ACTIVATE, environment)
        if not plugins:
            return []

        self.host.activate_plugins(plugins)
        logger.info("plugin_activation_checked", environment=environment, plugins=plugins)
        return plugins


class PluginDeactivation:
    def __init__(self, host: PluginHost, configurations: PluginConfigurations) -> None:
        self.host = host
        self.configurations = configurations

    def register(self, registry: Any) -> None:
        registry.add(BOOTSTRAP_PHASE, self.check_plugins, LIFECYCLE_PRIORITY)

    def check_plugins(self, environment: str) -> list[str]:
        """Deactivate the plugins configured for ``environment``."""
        plugins = self.configurations.get_configuration(DEACTIVATE, environment)
        if not plugins:
            return []

        self.host.deactivate_plugins(plugins)
        logger.info("plugin_deactivation_checked", environment=environment, plugins=plugins)
        return plugins
