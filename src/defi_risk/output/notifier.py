from typing import Protocol

from rich.console import Console
from rich.text import Text

from defi_risk.models.analysis import Alert
from defi_risk.output.formatters import level_color


class Notifier(Protocol):
    def notify(self, alerts: list[Alert]) -> None: ...


class ConsoleNotifier:
    """Prints alerts to the terminal, one line each."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def notify(self, alerts: list[Alert]) -> None:
        if not alerts:
            self.console.print("\n  [green]✓[/green] No risk alerts\n")
            return

        self.console.print(f"\n  [bold]ALERTS ({len(alerts)})[/bold]")
        self.console.print(f"  {'─' * 54}")
        for alert in alerts:
            style = level_color(alert.level)
            line = Text("  ")
            line.append("● ", style=style)
            line.append(f"[{alert.level.value.upper()}]", style=style)
            line.append(f" {alert.metric}: {alert.message}")
            self.console.print(line)
        self.console.print()
