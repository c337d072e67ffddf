"""
Schema migration commands.

Usage:
    noticeguard migrate
    noticeguard migrate --status
    noticeguard rollback --yes
"""

from __future__ import annotations

import argparse
from typing import Any

from noticeguard.bootstrap import NoticeGuard
from noticeguard.cli.ux import console, error, header, info, print_table, success, warning
from noticeguard.core.errors import ExitCode, MigrationError
from noticeguard.notices.migration import TABLES


def register_migrate_parser(subparsers: argparse._SubParsersAction[Any]) -> None:
    migrate_parser = subparsers.add_parser("migrate", help="Create or upgrade the notice tables")
    migrate_parser.add_argument(
        "--status",
        action="store_true",
        help="Show schema version and table state without migrating",
    )

    rollback_parser = subparsers.add_parser(
        "rollback", help="Drop the notice tables and reset the schema version"
    )
    rollback_parser.add_argument(
        "--yes",
        action="store_true",
        help="Confirm the destructive rollback",
    )


def handle_migrate_command(args: argparse.Namespace, guard: NoticeGuard) -> int:
    if getattr(args, "status", False):
        return migrate_status(guard)
    return migrate_command(guard)


def migrate_command(guard: NoticeGuard) -> int:
    """Run pending migrations. Raises MigrationError when tables cannot be verified."""
    migrator = guard.migrator
    if not migrator.needs_migration():
        success(f"Schema is up to date (version {migrator.schema_version})")
        return ExitCode.SUCCESS

    migrator.run()
    success(f"Migrated schema to version {migrator.schema_version}")
    return ExitCode.SUCCESS


def migrate_status(guard: NoticeGuard) -> int:
    migrator = guard.migrator
    header("Schema status")
    console.print(f"Stored version: [highlight]{migrator.schema_version}[/highlight]")
    console.print(f"Target version: [highlight]{migrator.target_version}[/highlight]")

    rows = []
    for table in TABLES:
        exists = migrator.table_exists(table.name)
        rows.append(
            [
                table.name,
                "yes" if exists else "no",
                str(migrator.table_row_count(table.name)) if exists else "-",
            ]
        )
    print_table("Tables", ["Table", "Exists", "Rows"], rows)

    if migrator.needs_migration():
        warning("Migration pending; run `noticeguard migrate`")
        return ExitCode.WARNING
    return ExitCode.SUCCESS


def rollback_command(args: argparse.Namespace, guard: NoticeGuard) -> int:
    """Drop both tables. Requires --yes."""
    if not getattr(args, "yes", False):
        error("Rollback drops all allowlist patterns and log entries")
        info("Re-run with --yes to confirm")
        return ExitCode.VALIDATION_ERROR

    try:
        guard.migrator.rollback()
    except Exception as exc:
        raise MigrationError("Rollback failed", details={"error": str(exc)}) from exc

    success("Dropped notice tables and reset schema version")
    return ExitCode.SUCCESS
