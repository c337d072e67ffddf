"""
Schema migrator.

Creates the allowlist and decision-log tables with create-if-not-exists
DDL and records the schema version in the option store. Safe to run from
several processes at once: DDL is idempotent and the version gate is
re-checked right before it.
"""

from __future__ import annotations

from typing import Any

import structlog
from packaging.version import InvalidVersion, Version
from sqlalchemy import Engine, Table, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from noticeguard.core.errors import MigrationError
from noticeguard.db.models import AllowlistPatternModel, NoticeLogModel
from noticeguard.options import OptionStore

logger = structlog.get_logger()

SCHEMA_VERSION = "1.0.0"
VERSION_OPTION = "noticeguard_db_version"
INITIAL_VERSION = "0.0.0"

TABLES: tuple[Table, ...] = (
    AllowlistPatternModel.__table__,  # type: ignore[assignment]
    NoticeLogModel.__table__,  # type: ignore[assignment]
)


def _version(value: str) -> Version:
    try:
        return Version(value)
    except InvalidVersion:
        return Version(INITIAL_VERSION)


class SchemaMigrator:
    def __init__(
        self,
        engine: Engine,
        options: OptionStore,
        target_version: str = SCHEMA_VERSION,
    ) -> None:
        self.engine = engine
        self.options = options
        self.target_version = target_version

    @property
    def schema_version(self) -> str:
        return self.options.get_option(VERSION_OPTION, INITIAL_VERSION) or INITIAL_VERSION

    def needs_migration(self) -> bool:
        """True iff the stored version is older than the target.

        An unparseable stored version counts as never migrated.
        """
        return _version(self.schema_version) < _version(self.target_version)

    def run(self) -> None:
        """Create missing tables, verify them and store the new version.

        Raises:
            MigrationError: a table is still missing after the DDL ran
        """
        if not self.needs_migration():
            logger.debug("schema_migration_not_needed", version=self.schema_version)
            return

        logger.info(
            "schema_migration_started", current=self.schema_version, target=self.target_version
        )

        for table in TABLES:
            try:
                table.create(self.engine, checkfirst=True)
            except SQLAlchemyError:
                # Another process may have created it between check and create.
                logger.debug("schema_table_create_raced", table=table.name, exc_info=True)

            if not self.table_exists(table.name):
                raise MigrationError(
                    f"Failed to create table: {table.name}", details={"table": table.name}
                )

        self.options.update_option(VERSION_OPTION, self.target_version)
        logger.info("schema_migration_completed", version=self.target_version)

    def run_migrations(self) -> bool:
        """Bootstrap entry point. Never raises; False means degraded mode."""
        if not self.needs_migration():
            return True

        try:
            self.run()
        except (MigrationError, SQLAlchemyError) as exc:
            logger.error(
                "schema_migration_failed",
                error=str(exc),
                target=self.target_version,
                exc_info=True,
            )
            return False
        return True

    def rollback(self) -> None:
        """Drop both tables and forget the schema version."""
        for table in reversed(TABLES):
            table.drop(self.engine, checkfirst=True)
        self.options.delete_option(VERSION_OPTION)
        logger.warning("schema_rolled_back", tables=[table.name for table in TABLES])

    def table_exists(self, name: str) -> bool:
        return inspect(self.engine).has_table(name)

    def table_row_count(self, name: str) -> int:
        table = self._table(name)
        if not self.table_exists(name):
            return 0
        with self.engine.connect() as conn:
            return int(conn.scalar(select(func.count()).select_from(table)) or 0)

    def table_schema(self, name: str) -> list[dict[str, Any]]:
        """Column descriptions from the database catalog."""
        if not self.table_exists(name):
            return []
        return [
            {
                "name": column["name"],
                "type": str(column["type"]),
                "nullable": column.get("nullable", True),
            }
            for column in inspect(self.engine).get_columns(name)
        ]

    @staticmethod
    def _table(name: str) -> Table:
        for table in TABLES:
            if table.name == name:
                return table
        raise ValueError(f"Unknown table: {name}")
