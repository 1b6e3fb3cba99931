"""RefWriter CLI - Main entry point."""

from typing import Annotated

import typer

import refwriter
from refwriter.cli.context import CLIContext, get_catalog_path, get_database_url
from refwriter.cli.logging_utils import setup_logging

# Create main Typer app
app = typer.Typer(
    name="refwriter",
    help="RefWriter CLI - Transactional writes for relational reference data",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            envvar="REFWRITER_URL",
            help="Database URL (PostgreSQL or SQLite)",
        ),
    ] = None,
    catalog: Annotated[
        str | None,
        typer.Option(
            "--catalog",
            "-c",
            envvar="REFWRITER_CATALOG",
            help="Schema catalog JSON file (default: built-in GTFS catalog)",
        ),
    ] = None,
    namespace: Annotated[
        str | None,
        typer.Option(
            "--namespace",
            "-n",
            envvar="REFWRITER_NAMESPACE",
            help="Schema qualifying every table name (PostgreSQL)",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            envvar="REFWRITER_LOG_LEVEL",
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
        ),
    ] = "WARNING",
) -> None:
    """Initialize CLI context with global options."""
    setup_logging(log_level)

    cli_ctx = CLIContext(
        database_url=get_database_url(database),
        echo=echo,
        json_output=json_output,
        catalog_path=get_catalog_path(catalog),
        namespace=namespace,
    )

    ctx.obj = cli_ctx


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"RefWriter v{refwriter.__version__}")


# Register command groups
from refwriter.cli.commands import data, schema  # noqa: E402

app.add_typer(schema.app, name="schema")
app.add_typer(data.app, name="data")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
