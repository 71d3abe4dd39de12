"""Console reporting and logging setup"""

import logging
from typing import Iterable, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table


def configure_logging(verbose: bool = False, console: Optional[Console] = None):
    """Route the ``localdev`` loggers through Rich

    Args:
        verbose: Emit DEBUG records (every external command) instead of WARNING+
        console: Console to write to (stderr console by default)
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logger = logging.getLogger("localdev")
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


class Reporter:
    """Prints the tagged status lines the harness uses for progress

    Mirrors the ``[STEP]`` / ``[INFO]`` / ``[WARNING]`` / ``[ERROR]`` prefixes
    so output stays greppable in CI logs.
    """

    def __init__(self, console: Console):
        self.console = console

    def banner(self, title: str):
        self.console.print(f"[bold blue]{title}[/bold blue]")
        self.console.print("=" * max(len(title), 24))

    def header(self, title: str):
        self.console.print(f"\n\n[bold]{title}[/bold]\n-------------------------------------")

    def footer(self):
        self.console.print("-------------------------------------")

    def section(self, title: str):
        self.console.print(f"\n=== {title} ===")

    def step(self, message: str):
        self.console.print(f"[blue]\\[STEP][/blue] {message}")

    def info(self, message: str):
        self.console.print(f"[green]\\[INFO][/green] {message}")

    def warning(self, message: str):
        self.console.print(f"[yellow]\\[WARNING][/yellow] {message}")

    def error(self, message: str):
        self.console.print(f"[red]\\[ERROR][/red] {message}")

    def success(self, message: str):
        self.console.print(f"[green]\\[SUCCESS][/green] {message}")

    def failure(self, message: str):
        self.console.print(f"[red]\\[FAILURE][/red] {message}")

    def ok(self, message: str):
        self.console.print(f"[green]✓[/green] {message}")

    def raw(self, text: str):
        """Print tool output verbatim (no markup interpretation)"""
        if text:
            self.console.print(text.rstrip("\n"), markup=False, highlight=False)

    def key_values(self, title: str, rows: Iterable[Tuple[str, str]]):
        table = Table(title=title, show_header=False, box=None)
        table.add_column("Key", style="cyan")
        table.add_column("Value", style="green")
        for key, value in rows:
            table.add_row(key, str(value))
        self.console.print(table)

    def panel(self, body: str, title: str, style: str = "blue"):
        self.console.print(Panel(body, title=f"[bold]{title}[/bold]", border_style=style, expand=False))
