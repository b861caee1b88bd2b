"""launchgate CLI entry point."""

import typer

from launchgate import __version__
from launchgate.cli.report_cmd import report as report_cmd
from launchgate.cli.run_cmd import run

app = typer.Typer(
    name="launchgate",
    help="Launch-readiness evidence harness for VEIL chains",
    no_args_is_help=True,
)

# Register subcommands
app.command(name="report")(report_cmd)
app.command()(run)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"launchgate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Launch-readiness evidence harness for VEIL chains."""
