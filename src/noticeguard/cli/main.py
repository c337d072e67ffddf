from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from noticeguard import __version__
from noticeguard.bootstrap import NoticeGuard
from noticeguard.cli.allowlist import handle_allowlist_command, register_allowlist_parser
from noticeguard.cli.log import cleanup_command, handle_log_command, register_log_parser
from noticeguard.cli.migrate import (
    handle_migrate_command,
    register_migrate_parser,
    rollback_command,
)
from noticeguard.config import get_settings
from noticeguard.core.errors import ExitCode, main_with_error_handling
from noticeguard.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="noticeguard", description="noticeguard CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    subparsers = parser.add_subparsers(dest="command")

    register_migrate_parser(subparsers)
    register_allowlist_parser(subparsers)
    register_log_parser(subparsers)
    return parser


@main_with_error_handling()
def run(argv: Sequence[str] | None = None, guard: NoticeGuard | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return ExitCode.VALIDATION_ERROR

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        json=args.json_logs,
    )
    guard = guard or NoticeGuard.create(get_settings())

    if args.command == "migrate":
        return handle_migrate_command(args, guard)
    if args.command == "rollback":
        return rollback_command(args, guard)
    if args.command == "cleanup":
        return cleanup_command(args, guard)
    if args.command == "allowlist":
        return handle_allowlist_command(args, guard)
    if args.command == "log":
        return handle_log_command(args, guard)

    parser.print_help()
    return ExitCode.VALIDATION_ERROR


def main(argv: Sequence[str] | None = None) -> None:
    sys.exit(run(argv))


if __name__ == "__main__":  # pragma: no cover
    main()
