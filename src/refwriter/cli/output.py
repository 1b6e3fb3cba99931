"""Output formatting for CLI commands.

Every printer has two renderings: Rich markup for people, or one JSON
document on stdout for ``--json``.
"""

import json
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from refwriter.exceptions import RefWriterError

console = Console()


def _emit_json(data: Any) -> None:
    print(json.dumps(data, default=str, indent=2))


def _flag(value: Any) -> str:
    return "✓" if value else ""


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        self.json_mode = json_mode

    def print_table(self, title: str, rows: list[dict[str, Any]], columns: list[str]) -> None:
        """Print ``rows`` as a Rich table (or a JSON array)."""
        if self.json_mode:
            _emit_json(rows)
            return
        table = Table(*columns, title=title, header_style="bold magenta")
        for row in rows:
            table.add_row(*(str(row.get(column, "")) for column in columns))
        console.print(table)

    def print_table_info(self, info: dict[str, Any]) -> None:
        """Print a table description from ``RefWriter.describe_table``."""
        if self.json_mode:
            _emit_json(info)
            return

        lines = [f"[bold]{info['name']}[/bold] keyed by [cyan]{info['key_field']}[/cyan]"]
        if info.get("parent_table"):
            via = info.get("parent_link_field") or "parent key"
            lines.append(f"child of {info['parent_table']} (via {via})")
        if info.get("delete_restricted"):
            lines.append("delete restricted while referenced")
        if info.get("exists"):
            lines.append(f"{info['row_count']:,} rows")
        else:
            lines.append("[dim]table not created yet[/dim]")
        if info.get("referenced_by"):
            lines.append(f"referenced by: {', '.join(info['referenced_by'])}")
        if info.get("child_tables"):
            lines.append(f"owns: {', '.join(info['child_tables'])}")
        if info.get("description"):
            lines.append(info["description"])
        console.print(Panel("\n".join(lines), expand=False))

        fields = Table("Field", "Type", "Reference", header_style="bold cyan")
        for field in info.get("fields", []):
            fields.add_row(field["name"], field["type"], _flag(field.get("foreign_reference")))
        console.print(fields)

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print a success line followed by its details."""
        details = details or {}
        if self.json_mode:
            _emit_json({"success": True, "message": message, **details})
            return
        console.print(f"✓ {message}", style="green")
        for key, value in details.items():
            console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print an error; RefWriter errors include their context."""
        if self.json_mode:
            if isinstance(error, RefWriterError):
                _emit_json(error.to_dict())
            else:
                _emit_json({"error": type(error).__name__, "message": str(error)})
            return

        body = str(error)
        context = error.context if isinstance(error, RefWriterError) else {}
        details = [f"{key}: {value}" for key, value in context.items() if value not in (None, {}, [])]
        if details:
            body += "\n\n" + "\n".join(details)
        console.print(Panel(body, title=f"[red]{type(error).__name__}[/red]", border_style="red"))

    def print_data(self, data: Any) -> None:
        """Print any JSON-compatible value."""
        if self.json_mode:
            _emit_json(data)
        else:
            console.print_json(json.dumps(data, default=str))
