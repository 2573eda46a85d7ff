"""Console output formatting for the CLI."""

import json
from typing import Any

import click
from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Writes human-readable or JSON output."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit JSON documents instead of styled text
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console()
        self.err_console = Console(stderr=True)

    def print(self, message: str = "") -> None:
        if not self.json_output:
            self.console.print(message, highlight=False)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message, highlight=False)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]", highlight=False)

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]Warning:[/yellow] {message}", highlight=False)

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}", highlight=False)

    def output_json(self, data: Any) -> None:
        """Print data as a JSON document."""
        click.echo(json.dumps(data, indent=2))

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column summary table."""
        if self.json_output:
            self.output_json({key: value for key, value in rows})
            return
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.console.print(table)
