"""Schema management commands."""

from typing import Annotated

import typer

from refwriter.cli.context import CLIContext
from refwriter.cli.output import OutputFormatter

# Create schema subcommand group
app = typer.Typer(help="Manage the catalog tables")


@app.command("init")
def schema_init(
    ctx: typer.Context,
    no_unique_keys: Annotated[
        bool,
        typer.Option(
            "--no-unique-keys",
            help="Skip the unique index on key fields (uniqueness is then checked by the writer only)",
        ),
    ] = False,
) -> None:
    """Create every catalog table that doesn't exist yet.

    Examples:

        refwriter schema init
        refwriter -d postgresql://localhost/transit -n feed_1 schema init
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        writer = cli_ctx.get_writer()
        tables = writer.create_tables(unique_keys=not no_unique_keys)
        formatter.print_success(
            f"Ensured {len(tables)} tables",
            {"tables": tables, "unique_keys": not no_unique_keys},
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("list")
def schema_list(ctx: typer.Context) -> None:
    """List all catalog tables."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        catalog = cli_ctx.get_writer().catalog
        if cli_ctx.json_output:
            formatter.print_data(catalog.table_names())
        else:
            table_data = [
                {
                    "Name": table.name,
                    "Key": table.key_field,
                    "Parent": table.parent_table or "",
                    "Fields": len(table.fields),
                    "Restricted": "✓" if table.delete_restricted else "",
                }
                for table in catalog
            ]
            formatter.print_table(
                f"Tables ({len(catalog)} total)",
                table_data,
                ["Name", "Key", "Parent", "Fields", "Restricted"],
            )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("show")
def schema_show(
    ctx: typer.Context,
    table_name: Annotated[str, typer.Argument(help="Table name")],
) -> None:
    """Show a table's fields, relationships and row count."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        info = cli_ctx.get_writer().describe_table(table_name)
        formatter.print_table_info(info)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()


@app.command("drop")
def schema_drop(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", help="Skip confirmation prompt"),
    ] = False,
) -> None:
    """Drop every catalog table and its data."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    if not force and not typer.confirm("Are you sure you want to drop all catalog tables?"):
        formatter.print_success("Cancelled")
        raise typer.Exit(code=0)

    try:
        writer = cli_ctx.get_writer()
        writer.drop_tables()
        formatter.print_success(
            f"Dropped {len(writer.catalog)} tables", {"tables": writer.list_tables()}
        )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
    finally:
        cli_ctx.close()
