from collections.abc import Callable

from defi_risk.config import RiskThresholds
from defi_risk.models.analysis import (
    Alert,
    AlertLevel,
    PortfolioValuation,
    RiskMetrics,
)


def _tiered(
    metric: str,
    value: float,
    warning: float | None,
    critical: float,
    describe: Callable[[float, float, AlertLevel], str],
) -> Alert | None:
    """One alert at the most severe breached level, or None."""
    if value > critical:
        level, threshold = AlertLevel.CRITICAL, critical
    elif warning is not None and value > warning:
        level, threshold = AlertLevel.WARNING, warning
    else:
        return None
    return Alert(
        level=level,
        metric=metric,
        message=describe(value, threshold, level),
        value=value,
        threshold=threshold,
    )


def generate_alerts(
    valuation: PortfolioValuation,
    metrics: RiskMetrics,
    thresholds: RiskThresholds,
) -> list[Alert]:
    """Threshold alerts in a fixed order: VaR, volatility, concentration, drawdown."""
    total = valuation.total_value_usd
    if total == 0:
        return []

    var_pct = metrics.var_95 / total
    candidates = [
        _tiered(
            "VaR (95%)",
            var_pct,
            thresholds.var_pct_warning,
            thresholds.var_pct_critical,
            lambda v, t, _: (
                f"Daily VaR is {v * 100:.1f}% of portfolio "
                f"(threshold: {t * 100:.1f}%)"
            ),
        ),
        _tiered(
            "Volatility",
            metrics.volatility_annualized,
            thresholds.vol_warning,
            thresholds.vol_critical,
            lambda v, t, _: (
                f"Annualised volatility at {v * 100:.0f}% (threshold: {t * 100:.0f}%)"
            ),
        ),
        _tiered(
            "Concentration",
            metrics.concentration_hhi,
            thresholds.hhi_warning,
            thresholds.hhi_critical,
            lambda v, t, level: (
                f"HHI at {v:.2f}, "
                + (
                    "portfolio highly concentrated"
                    if level == AlertLevel.CRITICAL
                    else "moderately concentrated"
                )
                + f" (threshold: {t:.2f})"
            ),
        ),
        _tiered(
            "Max Drawdown",
            metrics.max_drawdown,
            None,
            thresholds.drawdown_critical,
            lambda v, t, _: (
                f"Max drawdown at {v * 100:.1f}% (threshold: {t * 100:.0f}%)"
            ),
        ),
    ]
    return [a for a in candidates if a is not None]
