"""Tests for plugin lifecycle management."""

from unittest.mock import MagicMock

import pytest
from noticeguard.core.errors import ConfigurationError
from noticeguard.hooks import InMemoryHookRegistry
from noticeguard.notices.migration import SchemaMigrator
from noticeguard.options import MemoryOptionStore
from noticeguard.plugins.compat import WooCommerceCompat
from noticeguard.plugins.configurations import DEFAULT_CONFIGURATION, PluginConfigurations
from noticeguard.plugins.host import ACTIVE_PLUGINS_OPTION, DirectoryPluginHost
from noticeguard.plugins.lifecycle import (
    BOOTSTRAP_PHASE,
    MIGRATION_PRIORITY,
    PluginActivation,
    PluginDeactivation,
)

CODE_SNIPPETS = "code-snippets/code-snippets.php"


@pytest.fixture
def plugin_dir(tmp_path):
    directory = tmp_path / "plugins"
    (directory / "code-snippets").mkdir(parents=True)
    (directory / CODE_SNIPPETS).write_text("<?php\n")
    return directory


@pytest.fixture
def host(plugin_dir):
    return DirectoryPluginHost(plugin_dir, MemoryOptionStore())


class TestPluginConfigurations:
    def test_defaults(self):
        configurations = PluginConfigurations()
        assert configurations.get_configuration("deactivate", "production") == [CODE_SNIPPETS]
        assert configurations.get_configuration("activate", "staging") == [CODE_SNIPPETS]
        assert configurations.get_configuration("activate", "production") == []
        assert configurations.get_configuration("deactivate", "local") == []

    def test_unknown_kind_or_environment(self):
        configurations = PluginConfigurations()
        assert configurations.get_configuration("uninstall", "production") == []
        assert configurations.get_configuration("deactivate", "qa") == []

    def test_missing_plugins_filtered(self):
        configurations = PluginConfigurations(plugin_exists=lambda plugin: False)
        assert configurations.get_configuration("deactivate", "production") == []

    def test_defaults_not_mutated(self, tmp_path):
        path = tmp_path / "plugins.yaml"
        path.write_text("deactivate:\n  production:\n    - other/other.php\n")
        PluginConfigurations(path).get_configuration()
        assert DEFAULT_CONFIGURATION["deactivate"]["production"] == [CODE_SNIPPETS]

    def test_yaml_overrides_merge(self, tmp_path):
        path = tmp_path / "plugins.yaml"
        path.write_text(
            "deactivate:\n"
            "  production:\n"
            "    - query-monitor/query-monitor.php\n"
            "activate:\n"
            "  development:\n"
            "    - query-monitor/query-monitor.php\n"
        )
        configurations = PluginConfigurations(path)

        assert configurations.get_configuration("deactivate", "production") == [
            "query-monitor/query-monitor.php"
        ]
        assert configurations.get_configuration("activate", "development") == [
            "query-monitor/query-monitor.php"
        ]
        assert configurations.get_configuration("activate", "staging") == [CODE_SNIPPETS]

    @pytest.mark.parametrize(
        "content",
        ["deactivate: [unclosed", "- just\n- a list\n", "uninstall:\n  production: []\n"],
    )
    def test_bad_yaml(self, tmp_path, content):
        path = tmp_path / "plugins.yaml"
        path.write_text(content)
        with pytest.raises(ConfigurationError):
            PluginConfigurations(path).get_configuration()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            PluginConfigurations(tmp_path / "missing.yaml").get_configuration()


class TestDirectoryPluginHost:
    def test_plugin_exists(self, host):
        assert host.plugin_exists(CODE_SNIPPETS)
        assert not host.plugin_exists("missing/missing.php")

    def test_activate_and_deactivate(self, host):
        host.activate_plugins([CODE_SNIPPETS])
        host.activate_plugins([CODE_SNIPPETS])
        assert host.active_plugins() == [CODE_SNIPPETS]

        host.deactivate_plugins([CODE_SNIPPETS])
        assert host.active_plugins() == []

    def test_corrupt_option(self, plugin_dir):
        options = MemoryOptionStore({ACTIVE_PLUGINS_OPTION: "{not json"})
        assert DirectoryPluginHost(plugin_dir, options).active_plugins() == []


class TestLifecycle:
    def test_deactivates_in_production(self, host):
        host.activate_plugins([CODE_SNIPPETS])
        configurations = PluginConfigurations(plugin_exists=host.plugin_exists)

        assert PluginDeactivation(host, configurations).check_plugins("production") == [
            CODE_SNIPPETS
        ]
        assert host.active_plugins() == []

    def test_activates_in_staging(self, host):
        configurations = PluginConfigurations(plugin_exists=host.plugin_exists)

        PluginActivation(host, configurations).check_plugins("staging")

        assert host.active_plugins() == [CODE_SNIPPETS]

    def test_empty_list_does_nothing(self):
        host = MagicMock()
        configurations = PluginConfigurations()

        assert PluginActivation(host, configurations).check_plugins("local") == []
        assert PluginDeactivation(host, configurations).check_plugins("local") == []
        host.activate_plugins.assert_not_called()
        host.deactivate_plugins.assert_not_called()

    def test_migration_runs_first_on_bootstrap(self, host, db_engine):
        registry = InMemoryHookRegistry()
        options = MemoryOptionStore()
        migrator = SchemaMigrator(db_engine, options)
        configurations = PluginConfigurations(plugin_exists=host.plugin_exists)
        activation = PluginActivation(host, configurations, migrator)

        activation.register(registry)

        listing = registry.list(BOOTSTRAP_PHASE)
        assert min(listing) == MIGRATION_PRIORITY
        assert list(listing[MIGRATION_PRIORITY].values()) == [activation.run_database_migrations]

        registry.dispatch(BOOTSTRAP_PHASE, "staging")
        assert not migrator.needs_migration()
        assert host.active_plugins() == [CODE_SNIPPETS]

    def test_migration_skipped_when_current(self, host):
        migrator = MagicMock()
        migrator.needs_migration.return_value = False
        activation = PluginActivation(host, PluginConfigurations(), migrator)

        assert activation.run_database_migrations() is True
        migrator.run_migrations.assert_not_called()


class TestWooCommerceCompat:
    def test_removes_updater_notice(self):
        registry = InMemoryHookRegistry()
        registry.add("admin_notices", "woothemes_updater_notice", 10)
        registry.add("admin_notices", "other_notice", 10)
        WooCommerceCompat(registry).register()

        registry.dispatch("admin_init")

        assert not registry.has("admin_notices", "woothemes_updater_notice")
        assert registry.has("admin_notices", "other_notice")
