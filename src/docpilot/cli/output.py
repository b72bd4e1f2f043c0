"""
Output formatting with Rich console.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
from rich.theme import Theme

from docpilot.find import Finding

custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "red",
    "success": "green",
})


class ConsoleOutput:
    """Console output with Rich formatting."""

    def __init__(self, console: Console = None):
        self.console = console or Console(theme=custom_theme)

    def print(self, text: str = "", **kwargs):
        """Print text to console."""
        self.console.print(text, **kwargs)

    def print_error(self, text: str):
        self.console.print(f"[red]Error:[/red] {escape(text)}")

    def print_success(self, text: str):
        self.console.print(f"[green]Success:[/green] {text}")

    def print_warning(self, text: str):
        self.console.print(f"[yellow]Warning:[/yellow] {escape(text)}")

    def print_info(self, text: str):
        self.console.print(f"[cyan]Info:[/cyan] {text}")

    def print_dim(self, text: str):
        self.console.print(f"[dim]{text}[/dim]")

    def print_findings(self, findings: List[Finding]):
        """Table of findings grouped by file."""
        if not findings:
            self.print_success("No undocumented symbols found.")
            return
        table = Table(show_header=True, header_style="bold")
        table.add_column("File")
        table.add_column("Identifier", style="cyan")
        table.add_column("Target", style="dim")
        for f in findings:
            table.add_row(escape(f.file), escape(f.identifier), escape(f.target))
        self.console.print(table)
        self.print_dim(f"{len(findings)} undocumented symbol(s)")

    def print_failures(self, errors: Iterable[Exception]):
        """Itemized list of failed symbols or files."""
        errors = list(errors)
        if not errors:
            return
        self.print_warning(f"{len(errors)} failure(s):")
        for err in errors:
            self.console.print(f"  [red]-[/red] {escape(str(err))}", highlight=False)

    def print_code(self, path: str, code: str, language: str):
        self.console.rule(path)
        self.console.print(Syntax(code, language, line_numbers=False))


def setup_logging(verbose: bool = False) -> None:
    """Route docpilot's logging through Rich."""
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger("docpilot")
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.propagate = False
    # third-party request logs are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
