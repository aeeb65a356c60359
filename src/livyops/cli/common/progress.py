"""Progress formatting utilities for the CLI."""

from __future__ import annotations

import asyncio
from typing import Mapping

from rich.console import Group
from rich.live import Live
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from livyops.cli.common.output import console, state_style
from livyops.core.batches import BatchJob, BatchJobState

_MAX_BATCH_NAME_WIDTH = 56


def _truncate(text: str, max_len: int) -> str:
    """Return text capped at max_len characters using an ASCII ellipsis."""
    if max_len <= 3 or len(text) <= max_len:
        return text[:max_len]
    return f"{text[: max_len - 3]}..."


def _display_batch_label(
    batch_id: int,
    batch_name_by_id: Mapping[int, str] | None,
    *,
    name_width: int,
) -> str:
    """
    Render a batch label for the live progress list.

    - With mapping: `<name>  (id: <id>)` with aligned id column.
    - Without mapping (or if missing): fallback to just `<id>`.
    """
    if not batch_name_by_id:
        return str(batch_id)

    raw_name = batch_name_by_id.get(batch_id)
    if raw_name is None or str(raw_name) == str(batch_id):
        return str(batch_id)

    short_name = _truncate(str(raw_name), _MAX_BATCH_NAME_WIDTH)
    return f"{short_name.ljust(name_width)}  (id: {batch_id})"


async def wait_for_batches_with_progress(
    jobs: list[BatchJob],
    batch_name_by_id: Mapping[int, str] | None = None,
) -> list[tuple[BatchJob, BatchJobState, str]]:
    """
    Await completion of all batches concurrently. Shows:
      - an overall progress bar (x/y completed + failures)
      - per-batch spinner rows with elapsed timers (stops per batch when finished)

    Returns list of (BatchJob, BatchJobState, diagnostics) in input order.
    """
    shown_names = [
        _truncate(str(name), _MAX_BATCH_NAME_WIDTH)
        for job in jobs
        for name in [batch_name_by_id.get(job.batch_id) if batch_name_by_id else None]
        if name is not None and str(name) != str(job.batch_id)
    ]
    name_width = max((len(name) for name in shown_names), default=0)
    failures = 0

    overall = Progress(
        TextColumn("[bold]Overall[/]"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("failures=[bold red]{task.fields[failures]}[/]"),
        TimeElapsedColumn(),
        console=console,
    )

    per_batch = Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.fields[batch]}[/]"),
        TextColumn(
            "status=[{task.fields[style]}]{task.fields[status]}[/{task.fields[style]}]"
        ),
        TimeElapsedColumn(),
        console=console,
    )

    overall_task_id = overall.add_task("overall", total=max(len(jobs), 1), failures=0)

    task_ids = {
        job.batch_id: per_batch.add_task(
            "",
            total=1,
            batch=_display_batch_label(job.batch_id, batch_name_by_id, name_width=name_width),
            status="WAITING",
            style="warn",
        )
        for job in jobs
    }

    async def _watch(job: BatchJob) -> tuple[BatchJob, BatchJobState, str]:
        nonlocal failures
        state, diagnostics = await job.await_completion()

        if state != BatchJobState.SUCCESS:
            failures += 1
            overall.update(overall_task_id, failures=failures)

        per_batch.update(
            task_ids[job.batch_id],
            status="DONE" if state == BatchJobState.SUCCESS else state.value.upper(),
            style=state_style(state.value),
            completed=1,
        )
        overall.advance(overall_task_id, 1)
        return job, state, diagnostics

    with Live(Group(overall, per_batch), console=console, refresh_per_second=10, transient=True):
        results = await asyncio.gather(*(_watch(job) for job in jobs))

    return list(results)
