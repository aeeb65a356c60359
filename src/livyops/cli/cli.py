"""CLI application for Livy batch and session tooling."""

import typer

from livyops.cli.commands.batches import app as batches_app
from livyops.cli.commands.sessions import app as sessions_app
from livyops.cli.common.options import VerboseOpt
from livyops.cli.common.output import configure_logging

app = typer.Typer(
    help="livyops - Livy batch and interactive session tooling",
    no_args_is_help=True,
)


@app.callback()
def _main(verbose: bool = VerboseOpt):
    configure_logging(verbose)


app.add_typer(batches_app, name="batches", help="Submit / monitor / kill Livy batches.")
app.add_typer(sessions_app, name="sessions", help="Run code in interactive sessions.")


if __name__ == "__main__":
    app()
