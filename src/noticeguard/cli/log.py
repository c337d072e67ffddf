"""
Decision log commands.

Usage:
    noticeguard log recent --limit 20
    noticeguard log unique
    noticeguard log stats
    noticeguard cleanup --days 30
"""

from __future__ import annotations

import argparse
from typing import Any

from noticeguard.bootstrap import NoticeGuard
from noticeguard.cli.ux import console, error, header, info, print_table, success
from noticeguard.core.errors import ExitCode


def register_log_parser(subparsers: argparse._SubParsersAction[Any]) -> None:
    parser = subparsers.add_parser("log", help="Inspect the notice decision log")
    parser.add_argument("--tenant", type=int, default=None, help="Restrict to a tenant (site) id")
    log_subparsers = parser.add_subparsers(dest="log_command")

    recent_parser = log_subparsers.add_parser("recent", help="Most recent decisions")
    recent_parser.add_argument("--limit", type=int, default=100)

    log_subparsers.add_parser("unique", help="One row per callback and channel")
    log_subparsers.add_parser("stats", help="Aggregate statistics")

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete old decision log entries")
    cleanup_parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Keep entries newer than this many days (default: configured retention)",
    )
    cleanup_parser.add_argument(
        "--tenant", type=int, default=None, help="Only prune this tenant (site) id"
    )


def handle_log_command(args: argparse.Namespace, guard: NoticeGuard) -> int:
    command = getattr(args, "log_command", None)
    site_id = getattr(args, "tenant", None)

    if command == "recent":
        return recent_command(guard, limit=args.limit, site_id=site_id)
    if command == "unique":
        return unique_command(guard, site_id=site_id)
    if command == "stats":
        return stats_command(guard, site_id=site_id)

    error("Missing log subcommand (recent, unique, stats)")
    return ExitCode.VALIDATION_ERROR


def recent_command(guard: NoticeGuard, limit: int = 100, site_id: int | None = None) -> int:
    entries = guard.log.recent_entries(limit=limit, site_id=site_id)
    if not entries:
        info("No decisions logged")
        return ExitCode.SUCCESS

    print_table(
        "Recent decisions",
        ["ID", "Callback", "Channel", "Priority", "Action", "User", "Site", "When"],
        [
            [
                str(entry.id),
                entry.callback_name,
                entry.hook_name,
                str(entry.hook_priority),
                entry.action_taken.value,
                str(entry.user_id or ""),
                str(entry.site_id or ""),
                entry.created_at.isoformat(timespec="seconds") if entry.created_at else "",
            ]
            for entry in entries
        ],
    )
    return ExitCode.SUCCESS


def unique_command(guard: NoticeGuard, site_id: int | None = None) -> int:
    notices = guard.log.unique_entries(site_id=site_id)
    if not notices:
        info("No decisions logged")
        return ExitCode.SUCCESS

    print_table(
        "Unique notices",
        ["Callback", "Channel", "Last seen"],
        [
            [
                notice.callback_name,
                notice.hook_name,
                notice.last_seen.isoformat(timespec="seconds") if notice.last_seen else "",
            ]
            for notice in notices
        ],
    )
    return ExitCode.SUCCESS


def stats_command(guard: NoticeGuard, site_id: int | None = None) -> int:
    stats = guard.log.statistics(site_id=site_id)

    header("Decision log statistics")
    console.print(f"Total entries: [highlight]{stats.total}[/highlight]")
    console.print(f"Unique callbacks: [highlight]{stats.unique_callback_count}[/highlight]")
    for action, count in sorted(stats.action_breakdown.items()):
        console.print(f"  {action}: {count}")

    if stats.top_callbacks:
        print_table(
            "Top callbacks",
            ["Callback", "Entries"],
            [[name, str(count)] for name, count in stats.top_callbacks],
        )
    return ExitCode.SUCCESS


def cleanup_command(args: argparse.Namespace, guard: NoticeGuard) -> int:
    days = args.days if args.days is not None else guard.settings.log_retention_days
    deleted = guard.log.cleanup(days, site_id=getattr(args, "tenant", None))
    success(f"Deleted {deleted} entries older than {days} days")
    return ExitCode.SUCCESS
