"""Console output formatting for the CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table


class OutputFormatter:
    """Formats CLI output as styled text or JSON."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize the output formatter.

        Args:
            json_output: Emit machine readable JSON instead of text
            quiet: Suppress informational output
            console: Console for regular output (defaults to stdout)
            err_console: Console for errors and warnings (defaults to stderr)
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    @property
    def width(self) -> int:
        return self.console.width or 80

    def info(self, message: str) -> None:
        if self.quiet or self.json_output:
            return
        self.console.print(message, soft_wrap=True)

    def success(self, message: str) -> None:
        if self.json_output:
            return
        self.console.print(f"[green]✓[/green] {message}", soft_wrap=True)

    def warning(self, message: str) -> None:
        if self.quiet:
            return
        self.err_console.print(f"[yellow]{message}[/yellow]", soft_wrap=True)

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}", soft_wrap=True)

    def rule(self, style: str = "red") -> None:
        """Print a full-width separator line."""
        if self.quiet or self.json_output:
            return
        self.console.print("=" * self.width, style=style, soft_wrap=True)

    def key_value(self, key: str, value: Any, style: str = "green") -> None:
        """Print a labelled value, e.g. ``-> Postman UID: abc123``."""
        if self.json_output:
            return
        self.console.print(
            f"[cyan]{key}:[/cyan]\t[{style}]{value}[/{style}]", soft_wrap=True
        )

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def output_table(
        self, rows: list[dict[str, Any]], columns: list[str], title: str = ""
    ) -> None:
        """Print rows as a table, or as JSON in JSON mode."""
        if self.json_output:
            self.output_json(rows)
            return

        table = Table(title=title or None)
        for column in columns:
            table.add_column(column.capitalize())
        for row in rows:
            table.add_row(*(str(row.get(column, "")) for column in columns))
        self.console.print(table)
