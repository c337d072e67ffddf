"""
Option and preference storage.

Global options (schema version, global toggle, site-health settings) and
per-user preferences live in an ``OptionStore``. The database store is the
default and survives restarts; the Redis store is shared between workers
when Redis is the configured backend. The in-memory store is for tests.
"""

from __future__ import annotations

from typing import Any, Protocol

import redis
import structlog
from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from noticeguard.config import Settings, get_settings
from noticeguard.core.errors import PersistenceError
from noticeguard.db.models import Base, OptionModel, UserMetaModel
from noticeguard.db.session import session_scope

logger = structlog.get_logger()

OPTIONS_KEY = "noticeguard:options"
USER_META_KEY = "noticeguard:user_meta:{user_id}"

OPTION_TABLES = (OptionModel.__table__, UserMetaModel.__table__)


class OptionStore(Protocol):
    def get_option(self, name: str, default: str | None = None) -> str | None: ...

    def update_option(self, name: str, value: str) -> None: ...

    def delete_option(self, name: str) -> None: ...

    def get_user_meta(self, user_id: int, key: str) -> str | None: ...

    def update_user_meta(self, user_id: int, key: str, value: str) -> bool: ...

    def delete_user_meta(self, user_id: int, key: str) -> None: ...


class MemoryOptionStore:
    """Dictionary-backed option store."""

    def __init__(self, options: dict[str, str] | None = None) -> None:
        self._options: dict[str, str] = dict(options or {})
        self._user_meta: dict[int, dict[str, str]] = {}

    def get_option(self, name: str, default: str | None = None) -> str | None:
        return self._options.get(name, default)

    def update_option(self, name: str, value: str) -> None:
        self._options[name] = value

    def delete_option(self, name: str) -> None:
        self._options.pop(name, None)

    def get_user_meta(self, user_id: int, key: str) -> str | None:
        return self._user_meta.get(user_id, {}).get(key)

    def update_user_meta(self, user_id: int, key: str, value: str) -> bool:
        if user_id <= 0:
            return False
        self._user_meta.setdefault(user_id, {})[key] = value
        return True

    def delete_user_meta(self, user_id: int, key: str) -> None:
        self._user_meta.get(user_id, {}).pop(key, None)


class RedisOptionStore:
    """Option store kept in Redis hashes."""

    def __init__(
        self,
        redis_url: str,
        max_connections: int = 10,
        redis_client: redis.Redis | None = None,
    ) -> None:
        self._client = redis_client or redis.Redis(
            connection_pool=redis.ConnectionPool.from_url(
                redis_url,
                max_connections=max_connections,
                decode_responses=True,
            )
        )

    def get_option(self, name: str, default: str | None = None) -> str | None:
        value = self._client.hget(OPTIONS_KEY, name)
        return default if value is None else value

    def update_option(self, name: str, value: str) -> None:
        self._client.hset(OPTIONS_KEY, name, value)

    def delete_option(self, name: str) -> None:
        self._client.hdel(OPTIONS_KEY, name)

    def get_user_meta(self, user_id: int, key: str) -> str | None:
        return self._client.hget(USER_META_KEY.format(user_id=user_id), key)

    def update_user_meta(self, user_id: int, key: str, value: str) -> bool:
        if user_id <= 0:
            return False
        self._client.hset(USER_META_KEY.format(user_id=user_id), key, value)
        return True

    def delete_user_meta(self, user_id: int, key: str) -> None:
        self._client.hdel(USER_META_KEY.format(user_id=user_id), key)


class SqlOptionStore:
    """Option store kept in the application database.

    The two option tables are created on construction, so options can be
    read and written before the notice tables are migrated.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(engine, expire_on_commit=False)
        Base.metadata.create_all(engine, tables=list(OPTION_TABLES), checkfirst=True)

    def get_option(self, name: str, default: str | None = None) -> str | None:
        try:
            with session_scope(self.session_factory) as session:
                value = session.scalar(select(OptionModel.value).where(OptionModel.name == name))
        except SQLAlchemyError:
            logger.warning("option_read_failed", option=name, exc_info=True)
            return default
        return default if value is None else value

    def update_option(self, name: str, value: str) -> None:
        try:
            self._upsert(OptionModel, {"name": name}, value)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to write option", {"option": name}) from exc

    def delete_option(self, name: str) -> None:
        try:
            with session_scope(self.session_factory) as session:
                session.execute(delete(OptionModel).where(OptionModel.name == name))
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to delete option", {"option": name}) from exc

    def get_user_meta(self, user_id: int, key: str) -> str | None:
        try:
            with session_scope(self.session_factory) as session:
                return session.scalar(
                    select(UserMetaModel.value).where(
                        UserMetaModel.user_id == user_id, UserMetaModel.meta_key == key
                    )
                )
        except SQLAlchemyError:
            logger.warning("user_meta_read_failed", user_id=user_id, key=key, exc_info=True)
            return None

    def update_user_meta(self, user_id: int, key: str, value: str) -> bool:
        if user_id <= 0:
            return False
        try:
            self._upsert(UserMetaModel, {"user_id": user_id, "meta_key": key}, value)
        except SQLAlchemyError:
            logger.warning("user_meta_write_failed", user_id=user_id, key=key, exc_info=True)
            return False
        return True

    def delete_user_meta(self, user_id: int, key: str) -> None:
        try:
            with session_scope(self.session_factory) as session:
                session.execute(
                    delete(UserMetaModel).where(
                        UserMetaModel.user_id == user_id, UserMetaModel.meta_key == key
                    )
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                "Failed to delete user meta", {"user_id": user_id, "key": key}
            ) from exc

    def _upsert(self, model: type[Base], key: dict[str, Any], value: str) -> None:
        try:
            self._write(model, key, value)
        except IntegrityError:
            # A concurrent writer inserted the row first; overwrite it.
            self._write(model, key, value)

    def _write(self, model: type[Base], key: dict[str, Any], value: str) -> None:
        with session_scope(self.session_factory) as session:
            row = session.get(model, key)
            if row is None:
                session.add(model(**key, value=value))
            else:
                row.value = value  # type: ignore[attr-defined]


def build_option_store(engine: Engine, settings: Settings | None = None) -> OptionStore:
    """Redis when it is the configured backend, otherwise the database."""
    cfg = settings or get_settings()
    if cfg.cache_backend == "redis":
        return RedisOptionStore(cfg.redis_url, cfg.redis_max_connections)
    return SqlOptionStore(engine)
