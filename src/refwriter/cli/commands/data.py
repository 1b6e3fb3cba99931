"""Data write commands."""

import json
from typing import Annotated

import typer

from refwriter.cli.context import CLIContext
from refwriter.cli.output import OutputFormatter
from refwriter.cli.parsing import read_json_text

# Create data subcommand group
app = typer.Typer(help="Create, update and delete rows")


@app.command("create")
def data_create(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    data_json: Annotated[
        str | None,
        typer.Argument(help="Row data as JSON object"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--from-file", "-f", help="Load row data from a JSON file"),
    ] = None,
) -> None:
    """Create a row (and its child rows).

    Examples:

        refwriter data create routes '{"route_id": "R1", "route_short_name": "1"}'

        # Trips carry their stop times as a list
        refwriter data create trips --from-file trip.json
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        body = read_json_text(data_json, from_file)
        writer = cli_ctx.get_writer()
        created = json.loads(writer.table(table_name).create(body))
        if cli_ctx.json_output:
            formatter.print_data(created)
        else:
            formatter.print_success(f"Created {table_name} row", {"id": created["id"]})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("update")
def data_update(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    row_id: Annotated[int, typer.Argument(help="Row id")],
    data_json: Annotated[
        str | None,
        typer.Argument(help="Row data as JSON object"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--from-file", "-f", help="Load row data from a JSON file"),
    ] = None,
) -> None:
    """Update a row. A changed key field is followed into referencing tables.

    Examples:

        refwriter data update routes 1 '{"route_id": "R100"}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        body = read_json_text(data_json, from_file)
        writer = cli_ctx.get_writer()
        updated = json.loads(writer.table(table_name).update(row_id, body))
        if cli_ctx.json_output:
            formatter.print_data(updated)
        else:
            formatter.print_success(f"Updated {table_name} row", {"id": row_id})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("delete")
def data_delete(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
    row_id: Annotated[int, typer.Argument(help="Row id")],
) -> None:
    """Delete a row together with the rows referencing it.

    Examples:

        refwriter data delete routes 1
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        writer = cli_ctx.get_writer()
        deleted = writer.table(table_name).delete(row_id)
        formatter.print_success(f"Deleted {table_name} row {row_id}", {"deleted": deleted})
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
