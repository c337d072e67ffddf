"""
Service wiring.

``NoticeGuard`` builds every component from settings and attaches them to
the host's hook registry. Migrations run at the earliest bootstrap
priority; the suppression engine runs last in the admin-header phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from noticeguard.cache import PatternCache, build_cache
from noticeguard.config import Settings, get_settings
from noticeguard.db.session import create_db_engine
from noticeguard.hooks import InMemoryHookRegistry
from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.engine import SuppressionEngine, SuppressionReport
from noticeguard.notices.identifier import CallbackIdentifier
from noticeguard.notices.log import DecisionLog
from noticeguard.notices.migration import SchemaMigrator
from noticeguard.notices.patterns import PatternMatcher
from noticeguard.notices.policy import PolicyGate, RequestContext
from noticeguard.options import OptionStore, build_option_store
from noticeguard.plugins.compat import WooCommerceCompat
from noticeguard.plugins.configurations import PluginConfigurations
from noticeguard.plugins.host import DirectoryPluginHost, PluginHost
from noticeguard.plugins.lifecycle import BOOTSTRAP_PHASE, PluginActivation, PluginDeactivation

logger = structlog.get_logger()


@dataclass
class NoticeGuard:
    settings: Settings
    registry: Any
    options: OptionStore
    db_engine: Engine
    session_factory: sessionmaker[Session]
    identifier: CallbackIdentifier
    allowlist: AllowlistStore
    log: DecisionLog
    gate: PolicyGate
    engine: SuppressionEngine
    migrator: SchemaMigrator
    activation: PluginActivation
    deactivation: PluginDeactivation
    compat: WooCommerceCompat

    @classmethod
    def create(
        cls,
        settings: Settings | None = None,
        registry: Any | None = None,
        options: OptionStore | None = None,
        cache: PatternCache | None = None,
        plugin_host: PluginHost | None = None,
        db_engine: Engine | None = None,
    ) -> NoticeGuard:
        """Build all components; collaborators not given come from settings."""
        cfg = settings or get_settings()
        registry = registry if registry is not None else InMemoryHookRegistry()
        db_engine = db_engine if db_engine is not None else create_db_engine(cfg.database_url, cfg)
        options = options if options is not None else build_option_store(db_engine, cfg)
        cache = cache if cache is not None else build_cache(cfg)
        plugin_host = plugin_host or DirectoryPluginHost(cfg.plugin_dir, options)

        session_factory = sessionmaker(db_engine, expire_on_commit=False)
        identifier = CallbackIdentifier(secret=cfg.hash_salt)
        allowlist = AllowlistStore(
            session_factory, cache, matcher=PatternMatcher(), cache_ttl=cfg.allowlist_cache_ttl
        )
        log = DecisionLog(session_factory, identifier)
        gate = PolicyGate(options, cfg.elevated_capability)
        migrator = SchemaMigrator(db_engine, options)
        configurations = PluginConfigurations(
            cfg.plugin_config_path, plugin_exists=plugin_host.plugin_exists
        )

        return cls(
            settings=cfg,
            registry=registry,
            options=options,
            db_engine=db_engine,
            session_factory=session_factory,
            identifier=identifier,
            allowlist=allowlist,
            log=log,
            gate=gate,
            engine=SuppressionEngine(registry, allowlist, log, identifier, gate),
            migrator=migrator,
            activation=PluginActivation(plugin_host, configurations, migrator),
            deactivation=PluginDeactivation(plugin_host, configurations),
            compat=WooCommerceCompat(registry),
        )

    def register(self) -> None:
        """Attach lifecycle, compat and suppression hooks to the registry."""
        self.activation.register(self.registry)
        self.deactivation.register(self.registry)
        self.compat.register()
        self.engine.register(self.registry)
        logger.info("noticeguard_registered", environment=self.settings.environment)

    def boot(self) -> None:
        """Run the bootstrap phase for the configured environment."""
        self.registry.dispatch(BOOTSTRAP_PHASE, self.settings.environment)

    def for_context(self, context: RequestContext) -> AllowlistStore:
        """Allowlist store scoped to the request's tenant."""
        return self.allowlist.for_tenant(context.tenant_id)

    def suppress(self, context: RequestContext) -> SuppressionReport:
        return self.engine.run(context)
