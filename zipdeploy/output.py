"""Output formatting for the zipdeploy CLI."""

import json
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats CLI output as rich text or JSON."""

    def __init__(self, json_output: bool = False, quiet: bool = False):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of tables
            quiet: Suppress informational messages
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = Console(highlight=False)
        self.err_console = Console(stderr=True, highlight=False)

    def _message(self, message: str, style: str, err: bool = False) -> None:
        console = self.err_console if err else self.console
        console.print(message, style=style, markup=False)

    def info(self, message: str) -> None:
        """Print an informational message (suppressed in quiet/JSON mode)."""
        if not self.quiet and not self.json_output:
            self._message(message, "cyan")

    def success(self, message: str) -> None:
        """Print a success message (suppressed in quiet/JSON mode)."""
        if not self.quiet and not self.json_output:
            self._message(message, "green")

    def warning(self, message: str) -> None:
        """Print a warning to stderr."""
        self._message(f"Warning: {message}", "yellow", err=True)

    def error(self, message: str) -> None:
        """Print an error to stderr."""
        self._message(f"Error: {message}", "bold red", err=True)

    def print(self, message: str = "") -> None:
        """Print plain text (suppressed in quiet/JSON mode)."""
        if not self.quiet and not self.json_output:
            self.console.print(message, markup=False)

    def output_json(self, data: Any) -> None:
        """Print data as indented JSON."""
        click.echo(json.dumps(data, indent=2, sort_keys=True))

    def output_table(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        headers: Optional[list[str]] = None,
        title: Optional[str] = None,
    ) -> None:
        """Print rows as a table.

        Args:
            rows: Row dictionaries
            columns: Keys to show, in order
            headers: Column headers (defaults to the keys)
            title: Optional table title
        """
        table = Table(title=title, show_lines=False)
        for header in headers or columns:
            table.add_column(header, overflow="fold")
        for row in rows:
            table.add_row(*(str(row.get(col, "")) for col in columns))
        self.console.print(table)
