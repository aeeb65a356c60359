"""Exit handling utilities for the CLI."""

import asyncio
from typing import Any, Coroutine, NoReturn, TypeVar

import typer

from livyops.cli.common.output import out
from livyops.core.errors import LivyOpsError, StatementExecutionError

T = TypeVar("T")


def ok_exit(msg: str | None = None) -> "None":
    """Exit successfully with an optional informational message."""
    if msg:
        out.info(msg)
    raise typer.Exit(0)


def die(msg: str, code: int = 1) -> "None":
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def warn_exit(msg: str, code: int = 0) -> "None":
    """Exit with a warning message and optional exit code."""
    out.warn(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str, code: int = 1) -> NoReturn:
    """Print an error message and exit, chaining the original exception."""
    out.error(message)
    raise typer.Exit(code) from exc


def run_or_die(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion on a fresh event loop.

    livyops errors become an error message and exit code 1 (remote
    tracebacks of failed statements are printed first); Ctrl-C becomes
    exit code 130 without a traceback.
    """
    try:
        return asyncio.run(coro)
    except StatementExecutionError as exc:
        for line in exc.traceback:
            out.log_line("error", line.rstrip("\n"))
        exit_from_exc(exc, message=str(exc))
    except LivyOpsError as exc:
        exit_from_exc(exc, message=str(exc))
    except KeyboardInterrupt as exc:
        exit_from_exc(exc, message="Interrupted", code=130)
