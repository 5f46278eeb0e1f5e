"""Output formatting utilities."""

import json
from typing import Any, Dict, List, Optional

import click
import yaml
from rich.console import Console
from rich.table import Table
from rich.syntax import Syntax

from voila_dashboard.models import BaseModel

console = Console()


def to_plain(data: Any) -> Any:
    """Turn models (and lists of models) into plain dicts."""
    if isinstance(data, BaseModel):
        return data.to_dict()
    if isinstance(data, (list, tuple)):
        return [to_plain(item) for item in data]
    return data


def format_output(
    data: Any,
    format_type: str = "table",
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> None:
    """Format and print data based on format type."""
    data = to_plain(data)
    if format_type == "json":
        print_json(data)
    elif format_type == "yaml":
        print_yaml(data)
    else:
        if isinstance(data, list):
            print_table(data, columns, title=title)
        elif isinstance(data, dict):
            if "items" in data:
                print_table(data["items"], columns, title=title)
                if "total" in data:
                    console.print(f"\nTotal: {data['total']}")
            else:
                print_table([data], columns, title=title)
        else:
            console.print(data)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    json_str = json.dumps(to_plain(data), indent=2, default=str)
    if not console.is_terminal:
        # Piped output stays uncropped and parseable
        click.echo(json_str)
        return
    syntax = Syntax(json_str, "json", theme="monokai", line_numbers=False)
    console.print(syntax)


def print_yaml(data: Any) -> None:
    """Print data as formatted YAML."""
    yaml_str = yaml.safe_dump(json.loads(json.dumps(to_plain(data), default=str)),
                              default_flow_style=False, sort_keys=False, allow_unicode=True)
    if not console.is_terminal:
        click.echo(yaml_str, nl=False)
        return
    syntax = Syntax(yaml_str, "yaml", theme="monokai", line_numbers=False)
    console.print(syntax)


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "✓" if value else "✗"
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, (list, dict)):
        text = json.dumps(value, default=str)
        return text[:47] + "..." if len(text) > 50 else text
    text = str(value)
    return text[:47] + "..." if len(text) > 50 else text


def print_table(
    data: List[Dict[str, Any]],
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> None:
    """Print data as a formatted table."""
    if not data:
        console.print("[dim]No data to display[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")

    if columns:
        display_columns = columns
    else:
        display_columns = list(data[0].keys())[:8]

    for col in display_columns:
        table.add_column(col.replace("_", " ").title())

    for item in data:
        table.add_row(*[_cell(item.get(col)) for col in display_columns])

    console.print(table)


def print_key_values(rows: Dict[str, Any], title: Optional[str] = None) -> None:
    """Print a two-column metric table."""
    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in rows.items():
        table.add_row(key, _cell(value))
    console.print(table)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]i[/blue] {message}")
