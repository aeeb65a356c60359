"""Common CLI options for the CLI."""

import typer

from livyops.core.sessions import SessionKind

UrlOpt = typer.Option(
    None,
    "--url",
    "-u",
    help="Livy URL (defaults to $LIVYOPS_URL)",
)

RetriesOpt = typer.Option(
    None,
    "--retries",
    help="Attempts per polling call (defaults to $LIVYOPS_RETRIES_MAX or 3)",
)

DelayOpt = typer.Option(
    None,
    "--delay",
    help="Seconds between polling attempts (defaults to $LIVYOPS_DELAY_SECONDS or 10)",
)

ClassOpt = typer.Option(
    None,
    "--class",
    "-c",
    help="Main class of a JVM application",
)

ArgOpt = typer.Option(
    [],
    "--arg",
    "-a",
    help="Application argument. This is reusable.",
    show_default=False,
)

JarOpt = typer.Option(
    [],
    "--jar",
    help="Extra jar. This is reusable.",
    show_default=False,
)

PyFileOpt = typer.Option(
    [],
    "--py-file",
    help="Extra Python file. This is reusable.",
    show_default=False,
)

ConfOpt = typer.Option(
    [],
    "--conf",
    help="Spark configuration (key=value). This is reusable.",
    show_default=False,
)

NameOpt = typer.Option(
    None,
    "--name",
    help="Name of the batch or session",
)

QueueOpt = typer.Option(
    None,
    "--queue",
    "-q",
    help="YARN queue",
)

ConfirmOpt = typer.Option(
    True,
    "--confirm/--no-confirm",
    help="Ask for confirmation before killing",
)

WatchOpt = typer.Option(
    False,
    "--watch",
    "-w",
    help="Wait until the batch is complete",
)

LogsOpt = typer.Option(
    False,
    "--logs",
    "-l",
    help="Stream the submission log",
)

FullLogOpt = typer.Option(
    False,
    "--all",
    help="Fetch the whole log in one request instead of tailing it",
)

KindOpt = typer.Option(
    SessionKind.PYSPARK,
    "--kind",
    "-k",
    help="Session interpreter kind",
    case_sensitive=False,
)

CodeFileOpt = typer.Option(
    None,
    "--file",
    "-f",
    help="Read the code to run from a file",
    exists=True,
    dir_okay=False,
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Show debug logging",
)
