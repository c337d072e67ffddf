"""
Unified error handling for noticeguard.

Store and log APIs translate failures into boolean / empty results at
their boundary; the exceptions below are what flows between the layers
underneath and what CLI commands turn into exit codes.

Exit Codes:
- 0: Success
- 1: Warning (operation succeeded with warnings)
- 10: Configuration error
- 11: Persistence error (database or cache failure)
- 12: Validation error
- 13: Not found
- 14: Migration error
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    PERSISTENCE_ERROR = 11
    VALIDATION_ERROR = 12
    NOT_FOUND = 13
    MIGRATION_ERROR = 14
    UNKNOWN_ERROR = 127


class NoticeGuardError(Exception):
    """Base exception for noticeguard errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(NoticeGuardError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class PersistenceError(NoticeGuardError):
    """Raised when the database or cache backend fails."""

    exit_code = ExitCode.PERSISTENCE_ERROR


class ValidationError(NoticeGuardError):
    """Raised for invalid input (empty pattern, bad regex, unknown type)."""

    exit_code = ExitCode.VALIDATION_ERROR


class NotFoundError(NoticeGuardError):
    """Raised when a pattern or log entry does not exist."""

    exit_code = ExitCode.NOT_FOUND


class MigrationError(NoticeGuardError):
    """Raised when schema creation cannot be verified."""

    exit_code = ExitCode.MIGRATION_ERROR
    show_traceback = True


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI command functions that provides unified error handling.

    Exit codes:
        - NoticeGuardError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except NoticeGuardError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator
