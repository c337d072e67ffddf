"""Root test configuration."""

import logging

import pytest
import structlog
from noticeguard.bootstrap import NoticeGuard
from noticeguard.cache import MemoryCache
from noticeguard.config import Settings
from noticeguard.db.models import Base
from noticeguard.db.session import create_db_engine
from noticeguard.hooks import InMemoryHookRegistry
from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.engine import SuppressionEngine
from noticeguard.notices.identifier import CallbackIdentifier
from noticeguard.notices.log import DecisionLog
from noticeguard.notices.policy import PolicyGate, RequestContext
from noticeguard.options import MemoryOptionStore
from noticeguard.plugins.host import DirectoryPluginHost
from sqlalchemy.orm import sessionmaker

CAPABILITY = "noticeguard_full_access"


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


# -- Fixtures --


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        cache_backend="memory",
        hash_salt="test-salt",
        environment="production",
        plugin_dir=str(tmp_path / "plugins"),
    )


@pytest.fixture
def db_engine(settings):
    """In-memory SQLite engine, no tables."""
    engine = create_db_engine("sqlite://", settings)
    yield engine
    engine.dispose()


@pytest.fixture
def tables(db_engine):
    """Create both notice tables."""
    Base.metadata.create_all(db_engine)
    return db_engine


@pytest.fixture
def session_factory(tables):
    return sessionmaker(tables, expire_on_commit=False)


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def options():
    return MemoryOptionStore()


@pytest.fixture
def identifier():
    return CallbackIdentifier(tenant_id=1, secret="test-salt")


@pytest.fixture
def allowlist(session_factory, cache):
    return AllowlistStore(session_factory, cache, tenant_id=1)


@pytest.fixture
def decision_log(session_factory, identifier):
    return DecisionLog(session_factory, identifier)


@pytest.fixture
def gate(options):
    return PolicyGate(options, CAPABILITY)


@pytest.fixture
def registry():
    return InMemoryHookRegistry()


@pytest.fixture
def engine(registry, allowlist, decision_log, identifier, gate):
    return SuppressionEngine(registry, allowlist, decision_log, identifier, gate)


@pytest.fixture
def viewer():
    """Logged-in viewer without the elevated capability."""
    return RequestContext(user_id=5, tenant_id=1)


@pytest.fixture
def admin():
    """Logged-in viewer holding the elevated capability."""
    return RequestContext(user_id=1, tenant_id=1, capabilities=frozenset({CAPABILITY}))


@pytest.fixture
def guard(settings, registry, options, cache, db_engine, tmp_path):
    """Fully wired service with migrated tables."""
    service = NoticeGuard.create(
        settings,
        registry=registry,
        options=options,
        cache=cache,
        plugin_host=DirectoryPluginHost(tmp_path / "plugins", options),
        db_engine=db_engine,
    )
    service.migrator.run()
    return service
