"""Output formatting utilities for the CLI."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import questionary
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

from livyops.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)

_PENDING_STATES = {"not_started", "starting", "running", "recovering", "busy", "idle"}


def state_style(state: str | None) -> str:
    """Return the theme style used to render a batch or session state."""
    value = (state or "").lower()
    if value == "success":
        return "ok"
    if value in _PENDING_STATES:
        return "warn"
    return "err"


def configure_logging(verbose: bool) -> None:
    """Route library logging through Rich on the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages and tables."""

    def _q_try(self, fn, *args, **kwargs):
        """Call questionary prompts and drop unsupported kwargs on older versions."""
        try:
            return fn(*args, **kwargs)
        except TypeError:
            for k in ("pointer", "auto_enter"):
                kwargs.pop(k, None)
            return fn(*args, **kwargs)

    def info(self, msg: str) -> None:
        """Print an info message."""
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        console.print(f"[err]✗[/] {escape(msg)}")

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {escape(str(v))}")

    def log_line(self, severity: str, line: str) -> None:
        """Print one tailed log line; error entries are highlighted."""
        if severity == "error":
            console.print(f"[err]{escape(line)}[/]")
        else:
            console.print(escape(line), highlight=False)

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """
        Ask the user for confirmation using a standardized Questionary prompt.

        Args:
            message: Confirmation question shown to the user.
            default: Default answer if the user just presses enter.

        Returns:
            True if the user confirms, False otherwise.
        """
        console.print("[meta]Use y/n then Enter[/]")

        prompt = self._q_try(
            questionary.confirm,
            f"[livyops] {message}",
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def batches_table(self, batches: Iterable[Any], title: str = "Batches") -> None:
        """
        Expects objects with .id .state .app_id
        (like livyops.core.models.BatchResponse)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Batch ID", style="ok", no_wrap=True)
        t.add_column("State")
        t.add_column("Application ID", style="meta")

        for b in batches:
            style = state_style(b.state)
            t.add_row(str(b.id), f"[{style}]{b.state or '-'}[/{style}]", b.app_id or "")

        console.print(t)

    def batch_results_table(
        self, results: Iterable[tuple[Any, Any, str]], title: str = "Batch results"
    ) -> None:
        """
        Expects tuples of (BatchJob, BatchJobState, diagnostics)
        """
        t = Table(title=title, show_lines=False)
        t.add_column("Batch ID", style="ok", no_wrap=True)
        t.add_column("State")
        t.add_column("Diagnostics", style="meta")

        for job, state, diagnostics in results:
            state_value = state.value if hasattr(state, "value") else str(state)
            style = state_style(state_value)
            t.add_row(
                str(job.batch_id),
                f"[{style}]{state_value}[/{style}]",
                escape(diagnostics or ""),
            )

        console.print(t)

    def containers_table(self, containers: Iterable[tuple[str, str]], title: str = "Containers") -> None:
        """Render (host, container_id) pairs."""
        t = Table(title=title, show_lines=False)
        t.add_column("Container ID", style="ok", no_wrap=True)
        t.add_column("Host")

        for host, container_id in containers:
            t.add_row(container_id, host)

        console.print(t)

    def statement_output(self, data: Mapping[str, Any]) -> None:
        """Print statement output, preferring the text/plain representation."""
        text = data.get("text/plain")
        if text is not None:
            console.print(escape(str(text)), highlight=False)
            return
        self.kv(data)


out = Out()
