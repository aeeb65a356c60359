"""Commands for interactive Livy sessions."""

from pathlib import Path

import typer

from livyops.cli.common.context import LivyAppContext, build_context
from livyops.cli.common.exits import die, run_or_die
from livyops.cli.common.options import CodeFileOpt, DelayOpt, KindOpt, NameOpt, RetriesOpt, UrlOpt
from livyops.cli.common.output import out
from livyops.core.sessions import SessionKind

app = typer.Typer(
    help="Run code in interactive Livy sessions",
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
    """Initialize the sessions context."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)
    ctx.obj = build_context(url=url, retries_max=retries, delay_seconds=delay)


@app.command()
def run(
    ctx: typer.Context,
    code: str | None = typer.Argument(None, help="Code to run"),
    file: Path | None = CodeFileOpt,
    kind: SessionKind = KindOpt,
    name: str | None = NameOpt,
):
    """
    Create a session, run code in it and kill it.
    """
    appctx: LivyAppContext = ctx.obj

    if file is not None:
        code = file.read_text(encoding="utf-8")
    if not code or not code.strip():
        die("Nothing to run: pass code or --file", code=1)

    session = appctx.session(name or "livyops", kind)

    async def _run():
        async with session:
            await session.create()
            out.info(f"Session {session.id} created, waiting until it is ready...")
            return await session.run_code(code)

    data = run_or_die(_run())
    out.statement_output(data)


@app.command()
def kill(ctx: typer.Context, session_id: int = typer.Argument(..., help="Session id")):
    """
    Kill an interactive session.
    """
    appctx: LivyAppContext = ctx.obj
    run_or_die(appctx.existing_session(session_id).kill())
    out.success(f"Session {session_id} killed")
