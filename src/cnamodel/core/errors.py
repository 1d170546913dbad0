"""
Error hierarchy for the CNA modeling tool.

Model construction and TOSCA export raise the errors below; the CLI maps
them to exit codes. The export never recovers from these itself: any of
them aborts the whole export and no partial document is produced.

Exit Codes:
- 0: Success
- 10: Configuration error (model file unreadable or malformed)
- 12: Validation error (the entity graph violates an invariant)
- 13: Export error (internal defect while assembling the document)
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
    CONFIG_ERROR = 10
    VALIDATION_ERROR = 12
    EXPORT_ERROR = 13
    UNKNOWN_ERROR = 127


class CnaModelError(Exception):
    """Base exception for modeling and export errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ModelLoadError(CnaModelError):
    """Raised when a model file cannot be read or references unknown entities."""

    exit_code = ExitCode.CONFIG_ERROR


class ReferentialIntegrityError(CnaModelError):
    """A relation points back at its own source, or at something that is not there."""

    exit_code = ExitCode.VALIDATION_ERROR


class TypeMismatchError(CnaModelError):
    """A relation was constructed with an entity outside its allowed variants."""

    exit_code = ExitCode.VALIDATION_ERROR


class MissingPropertyError(CnaModelError):
    """A required endpoint property (type, path or port) is absent."""

    exit_code = ExitCode.VALIDATION_ERROR


class KeyCollisionExhaustion(CnaModelError):
    """No free suffixed key could be found. Always an implementation defect."""

    exit_code = ExitCode.EXPORT_ERROR
    show_traceback = True


class TemplateAssemblyError(CnaModelError):
    """A builder produced a template the assembler cannot accept."""

    exit_code = ExitCode.EXPORT_ERROR
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
        - CnaModelError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except CnaModelError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                from cnamodel.cli.ux import error as print_error

                print_error(format_error_message(e))
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


def format_error_message(error: CnaModelError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
