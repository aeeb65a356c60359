"""Commands for Livy batch jobs."""

import typer

from livyops.cli.common.context import LivyAppContext, build_context
from livyops.cli.common.exits import die, ok_exit, run_or_die, warn_exit
from livyops.cli.common.options import (
    ArgOpt,
    ClassOpt,
    ConfOpt,
    ConfirmOpt,
    DelayOpt,
    FullLogOpt,
    JarOpt,
    LogsOpt,
    NameOpt,
    PyFileOpt,
    QueueOpt,
    RetriesOpt,
    UrlOpt,
    WatchOpt,
)
from livyops.cli.common.output import out
from livyops.cli.common.progress import wait_for_batches_with_progress
from livyops.cli.common.submission_builder import build_submission
from livyops.cli.tui import select_batches
from livyops.core.batches import BatchJob, BatchJobState, list_batches

app = typer.Typer(
    help="Submit and monitor Livy batch jobs",
    no_args_is_help=False,
    invoke_without_command=True,
)


@app.callback()
def _init(
    ctx: typer.Context,
    url: str | None = UrlOpt,
    retries: int | None = RetriesOpt,
    delay: float | None = DelayOpt,
):
    """Initialize the batches context."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    ctx.obj = build_context(url=url, retries_max=retries, delay_seconds=delay)


async def _stream_log(job: BatchJob) -> None:
    async for severity, line in job.tail_log():
        out.log_line(severity.value, line)


@app.command("list")
def list_cmd(ctx: typer.Context):
    """
    List batches known to the Livy server.
    """
    appctx: LivyAppContext = ctx.obj

    with out.status("Loading batches..."):
        batches = run_or_die(list_batches(appctx.transport, appctx.config.batches_url))

    if not batches:
        warn_exit("No batches found", code=0)

    out.batches_table(batches)


@app.command()
def submit(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="Application jar or Python file on cluster storage"),
    class_name: str | None = ClassOpt,
    arg: list[str] = ArgOpt,
    jar: list[str] = JarOpt,
    py_file: list[str] = PyFileOpt,
    conf: list[str] = ConfOpt,
    name: str | None = NameOpt,
    queue: str | None = QueueOpt,
    logs: bool = LogsOpt,
    watch: bool = WatchOpt,
):
    """
    Submit a batch job.
    """
    appctx: LivyAppContext = ctx.obj

    try:
        submission = build_submission(
            file=file,
            class_name=class_name,
            args=arg,
            jars=jar,
            py_files=py_file,
            conf=conf,
            name=name,
            queue=queue,
        )
    except ValueError as e:
        die(str(e), code=1)

    job = appctx.new_batch(submission)
    with out.status("Submitting batch..."):
        run_or_die(job.submit())
    out.success(f"Batch submitted: id {job.batch_id}")

    if logs:
        run_or_die(_stream_log(job))

    if watch:
        _watch([job])


@app.command()
def status(ctx: typer.Context, batch_id: int = typer.Argument(..., help="Batch id")):
    """
    Show the state of a batch.
    """
    appctx: LivyAppContext = ctx.obj
    job = appctx.batch(batch_id)

    async def _status():
        return await job.poll_state(), await job.is_alive()

    with out.status("Polling batch..."):
        state, alive = run_or_die(_status())

    out.kv({"batch": batch_id, "state": state, "alive": "yes" if alive else "no"})


@app.command()
def logs(
    ctx: typer.Context,
    batch_id: int = typer.Argument(..., help="Batch id"),
    whole: bool = FullLogOpt,
):
    """
    Print the submission log of a batch.
    """
    appctx: LivyAppContext = ctx.obj
    job = appctx.batch(batch_id)

    if not whole:
        run_or_die(_stream_log(job))
        return

    with out.status("Loading log..."):
        lines = run_or_die(job.full_log())
    for line in lines:
        out.log_line("log", line)


@app.command()
def kill(
    ctx: typer.Context,
    batch_ids: list[int] = typer.Argument(None, help="Batch ids (select interactively when omitted)"),
    confirm: bool = ConfirmOpt,
):
    """
    Kill batches.
    """
    appctx: LivyAppContext = ctx.obj

    if not batch_ids:
        with out.status("Loading batches..."):
            batches = run_or_die(list_batches(appctx.transport, appctx.config.batches_url))
        if not batches:
            warn_exit("No batches found", code=0)
        batch_ids = [b.id for b in select_batches(batches)]

    if not batch_ids:
        warn_exit("No batches selected", code=0)

    if confirm and not out.confirm(f"Kill {len(batch_ids)} batch(es)?"):
        ok_exit("Cancelled")

    for batch_id in batch_ids:
        run_or_die(appctx.batch(batch_id).kill())
        out.success(f"Batch {batch_id} killed")


def _watch(jobs: list[BatchJob]) -> None:
    results = run_or_die(wait_for_batches_with_progress(jobs))
    out.batch_results_table(results)

    if any(state != BatchJobState.SUCCESS for _, state, _ in results):
        raise typer.Exit(1)


@app.command()
def wait(
    ctx: typer.Context,
    batch_ids: list[int] = typer.Argument(..., help="Batch ids"),
):
    """
    Wait until batches finish and their logs are aggregated.
    """
    appctx: LivyAppContext = ctx.obj
    _watch([appctx.batch(batch_id) for batch_id in batch_ids])


@app.command()
def driver(ctx: typer.Context, batch_id: int = typer.Argument(..., help="Batch id")):
    """
    Show the driver host and driver log URL of a running batch.
    """
    appctx: LivyAppContext = ctx.obj
    job = appctx.batch(batch_id)

    async def _driver():
        return await job.get_driver_host(), await job.driver_log_url()

    with out.status("Resolving driver..."):
        host, log_url = run_or_die(_driver())

    out.kv({"driver host": host, "driver log": log_url or "-"})


@app.command()
def containers(ctx: typer.Context, batch_id: int = typer.Argument(..., help="Batch id")):
    """
    List the containers of a batch whose logs are available.
    """
    appctx: LivyAppContext = ctx.obj
    job = appctx.batch(batch_id)

    async def _collect():
        return [container async for container in job.containers()]

    with out.status("Discovering containers..."):
        found = run_or_die(_collect())

    if not found:
        warn_exit("No containers with available logs", code=0)

    out.containers_table(found)
