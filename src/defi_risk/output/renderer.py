import io

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from defi_risk.analysis.delta import compare_results
from defi_risk.config import RiskThresholds
from defi_risk.models.analysis import AnalysisResult, DataSource, ResultDelta
from defi_risk.output.formatters import (
    change_color,
    fmt_amount,
    fmt_change,
    fmt_number,
    fmt_pct,
    fmt_signed_pct,
    fmt_signed_usd,
    fmt_usd,
    threshold_color,
)

SOURCE_LABELS = {
    DataSource.LIVE: "live market data",
    DataSource.CACHED: "cached risk metrics (history unavailable)",
    DataSource.CONCENTRATION_ONLY: "concentration only (history unavailable)",
}


class AnalysisRenderer:
    def __init__(
        self,
        console: Console | None = None,
        thresholds: RiskThresholds | None = None,
    ) -> None:
        self.console = console or Console()
        self.thresholds = thresholds or RiskThresholds()

    def render(
        self, result: AnalysisResult, previous: AnalysisResult | None = None
    ) -> None:
        delta = compare_results(previous, result) if previous else None
        self._render_header(result)
        self._render_value(result, delta)
        self._render_risk(result, delta)
        self._render_holdings(result)

    def _render_header(self, result: AnalysisResult) -> None:
        self.console.print()
        self.console.print(
            Panel(
                f"[bold]Portfolio Analysis[/bold]  {result.timestamp}\n"
                f"[dim]Source: {SOURCE_LABELS[result.data_source]}[/dim]",
                title="DeFi Risk Engine",
                style="cyan",
            )
        )

    def _render_value(self, result: AnalysisResult, delta: ResultDelta | None) -> None:
        line = Text("  PORTFOLIO VALUE  ", style="bold")
        line.append(fmt_usd(result.valuation.total_value_usd), style="cyan")
        if delta is not None:
            color = change_color(delta.value_change_usd)
            line.append(f"  {fmt_signed_usd(delta.value_change_usd)}", style=color)
            if delta.value_change_pct is not None:
                line.append(f" ({fmt_signed_pct(delta.value_change_pct)})", style=color)
        self.console.print(line)

    def _render_risk(self, result: AnalysisResult, delta: ResultDelta | None) -> None:
        r = result.risk
        t = self.thresholds
        total = result.valuation.total_value_usd
        var_pct = r.var_95 / total if total > 0 else 0.0

        table = Table(title="Risk Metrics", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right")
        if delta is not None:
            table.add_column("Change", justify="right")

        rows = [
            (
                "VaR 95% (1-day)",
                Text(
                    f"{fmt_usd(r.var_95)} ({fmt_pct(var_pct)})",
                    style=threshold_color(
                        var_pct, t.var_pct_warning, t.var_pct_critical
                    ),
                ),
                fmt_signed_usd(delta.var_95) if delta else None,
            ),
            ("VaR 99% (1-day)", Text(fmt_usd(r.var_99)), None),
            (
                "Volatility (ann.)",
                Text(
                    fmt_pct(r.volatility_annualized),
                    style=threshold_color(
                        r.volatility_annualized, t.vol_warning, t.vol_critical
                    ),
                ),
                fmt_signed_pct(delta.volatility_annualized) if delta else None,
            ),
            (
                "Sharpe Ratio",
                Text(fmt_number(r.sharpe_ratio), style=change_color(r.sharpe_ratio)),
                f"{delta.sharpe_ratio:+.3f}" if delta else None,
            ),
            (
                "Concentration (HHI)",
                Text(
                    fmt_number(r.concentration_hhi),
                    style=threshold_color(
                        r.concentration_hhi, t.hhi_warning, t.hhi_critical
                    ),
                ),
                f"{delta.concentration_hhi:+.3f}" if delta else None,
            ),
            (
                "Max Drawdown",
                Text(
                    fmt_pct(r.max_drawdown),
                    style=threshold_color(r.max_drawdown, None, t.drawdown_critical),
                ),
                fmt_signed_pct(delta.max_drawdown) if delta else None,
            ),
        ]
        for name, value, change in rows:
            if delta is not None:
                table.add_row(name, value, change or "")
            else:
                table.add_row(name, value)
        self.console.print(table)

    def _render_holdings(self, result: AnalysisResult) -> None:
        table = Table(title="Holdings", show_header=True)
        table.add_column("Token", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Price", justify="right")
        table.add_column("Value", justify="right")
        table.add_column("Weight", justify="right")
        table.add_column("24h", justify="right")

        for h in result.valuation.holdings:
            table.add_row(
                h.symbol,
                fmt_amount(h.amount),
                fmt_usd(h.price),
                fmt_usd(h.value_usd),
                fmt_pct(h.weight),
                Text(fmt_change(h.change_24h_pct), style=change_color(h.change_24h_pct)),
            )
        self.console.print(table)


def render_to_text(
    result: AnalysisResult,
    previous: AnalysisResult | None = None,
    thresholds: RiskThresholds | None = None,
    width: int = 100,
) -> str:
    """Render to plain text, without colour codes."""
    buf = io.StringIO()
    console = Console(file=buf, width=width, color_system=None, force_terminal=False)
    AnalysisRenderer(console, thresholds).render(result, previous)
    return buf.getvalue()
