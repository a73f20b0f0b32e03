"""Operator-facing output: colored log lines, tables and confirmation."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table


class Presenter:
    """
    Output sink for kubetool commands.

    All operator-facing text goes through one rich Console, so tests can
    capture it by passing a console that writes to a buffer.
    """

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize presenter.

        Args:
            console: Console to write to (stdout when omitted)
        """
        self.console = console or Console(highlight=False)

    def log(self, *parts: str) -> None:
        """Print one line made of space-separated markup parts."""
        self.console.print(*parts)

    def success(self, message: str) -> None:
        self.console.print(f"[green]{escape(message)}[/green]")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{escape(message)}[/red]")

    def confirm(self, message: str) -> bool:
        """
        Ask the operator to confirm.

        Args:
            message: Question to show

        Returns:
            True to continue
        """
        return Confirm.ask(message, console=self.console, default=False)

    def table(self, columns: list[str], rows: list[list[str]]) -> None:
        """Print a borderless table."""
        table = Table(box=None, pad_edge=False, header_style="bold")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(escape(cell) for cell in row))
        self.console.print(table)
