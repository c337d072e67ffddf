"""
Allowlist management commands.

Usage:
    noticeguard allowlist list [--active-only]
    noticeguard allowlist add 'rocket_*' --type wildcard
    noticeguard allowlist remove 'rocket_*'
    noticeguard allowlist remove --id 3
    noticeguard allowlist activate 3
    noticeguard allowlist deactivate 3
"""

from __future__ import annotations

import argparse
from typing import Any

from noticeguard.bootstrap import NoticeGuard
from noticeguard.cli.ux import error, info, print_table, success
from noticeguard.core.errors import ExitCode, NotFoundError, ValidationError
from noticeguard.domain.models import PatternType
from noticeguard.notices.allowlist import AllowlistStore
from noticeguard.notices.identifier import CallbackIdentifier


def register_allowlist_parser(subparsers: argparse._SubParsersAction[Any]) -> None:
    parser = subparsers.add_parser("allowlist", help="Manage allowlist patterns")
    parser.add_argument("--tenant", type=int, default=1, help="Tenant (site) id")
    allowlist_subparsers = parser.add_subparsers(dest="allowlist_command")

    list_parser = allowlist_subparsers.add_parser("list", help="List patterns")
    list_parser.add_argument("--active-only", action="store_true", help="Hide inactive patterns")

    add_parser = allowlist_subparsers.add_parser("add", help="Add a pattern")
    add_parser.add_argument("pattern", help="Pattern value")
    add_parser.add_argument(
        "--type",
        dest="pattern_type",
        choices=[kind.value for kind in PatternType],
        default=PatternType.exact.value,
        help="Pattern type (default: exact)",
    )
    add_parser.add_argument("--created-by", type=int, default=None, help="Acting user id")

    remove_parser = allowlist_subparsers.add_parser("remove", help="Remove a pattern")
    remove_parser.add_argument("pattern", nargs="?", help="Pattern value")
    remove_parser.add_argument("--id", dest="pattern_id", type=int, help="Pattern id")

    for name, help_text in (
        ("activate", "Use a pattern for matching again"),
        ("deactivate", "Keep a pattern but stop matching it"),
    ):
        toggle_parser = allowlist_subparsers.add_parser(name, help=help_text)
        toggle_parser.add_argument("pattern_id", type=int, help="Pattern id")


def handle_allowlist_command(args: argparse.Namespace, guard: NoticeGuard) -> int:
    store = guard.allowlist.for_tenant(getattr(args, "tenant", 1))
    command = getattr(args, "allowlist_command", None)

    if command == "list":
        return list_command(store, active_only=args.active_only)
    if command == "add":
        return add_command(store, args.pattern, args.pattern_type, args.created_by)
    if command == "remove":
        return remove_command(store, pattern=args.pattern, pattern_id=args.pattern_id)
    if command == "activate":
        return toggle_command(store, args.pattern_id, active=True)
    if command == "deactivate":
        return toggle_command(store, args.pattern_id, active=False)

    error("Missing allowlist subcommand (list, add, remove, activate, deactivate)")
    return ExitCode.VALIDATION_ERROR


def list_command(store: AllowlistStore, active_only: bool = False) -> int:
    patterns = store.list_patterns(include_inactive=not active_only)
    if not patterns:
        info("No allowlist patterns")
        return ExitCode.SUCCESS

    print_table(
        f"Allowlist (tenant {store.tenant_id})",
        ["ID", "Pattern", "Type", "Active", "Created"],
        [
            [
                str(pattern.id),
                pattern.pattern_value,
                pattern.pattern_type.value,
                "yes" if pattern.is_active else "no",
                pattern.created_at.isoformat(timespec="seconds") if pattern.created_at else "",
            ]
            for pattern in patterns
        ],
    )
    return ExitCode.SUCCESS


def add_command(
    store: AllowlistStore,
    pattern: str,
    pattern_type: str = PatternType.exact.value,
    created_by: int | None = None,
) -> int:
    """Validate and add a pattern. Raises ValidationError for bad input."""
    value = CallbackIdentifier.sanitize_pattern(pattern)
    kind = store.validate_pattern(value, pattern_type)

    if not store.add_pattern(value, kind, created_by=created_by):
        raise ValidationError("Failed to add pattern. It may already exist.", {"pattern": value})

    success(f"Added {kind.value} pattern '{value}'")
    return ExitCode.SUCCESS


def remove_command(
    store: AllowlistStore,
    pattern: str | None = None,
    pattern_id: int | None = None,
) -> int:
    if pattern_id is not None:
        removed = store.remove_pattern(pattern_id)
        target = f"#{pattern_id}"
    elif pattern:
        removed = store.remove_pattern_by_value(pattern)
        target = f"'{pattern}'"
    else:
        raise ValidationError("Give a pattern value or --id")

    if not removed:
        raise NotFoundError("Pattern not found", {"pattern": target})

    success(f"Removed pattern {target}")
    return ExitCode.SUCCESS


def toggle_command(store: AllowlistStore, pattern_id: int, active: bool) -> int:
    changed = store.activate_pattern(pattern_id) if active else store.deactivate_pattern(pattern_id)
    if not changed:
        raise NotFoundError("Pattern not found", {"pattern_id": pattern_id})

    success(f"Pattern #{pattern_id} {'activated' if active else 'deactivated'}")
    return ExitCode.SUCCESS
