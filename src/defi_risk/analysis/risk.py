"""
Pure portfolio statistics.

Nothing here performs I/O or raises on degenerate input: empty series,
single prices and zero-valued portfolios all map to well-defined zeros.
"""

import math
from collections.abc import Sequence

import numpy as np

from defi_risk.models.analysis import HoldingValuation, PortfolioValuation, RiskMetrics
from defi_risk.models.market import HistoricalSeries, PriceQuote
from defi_risk.models.portfolio import Holding

Z_95 = 1.645
Z_99 = 2.326
DAYS_PER_YEAR = 365  # crypto trades every day
RISK_FREE_RATE = 0.045


def valuate_portfolio(
    holdings: Sequence[Holding], quotes: Sequence[PriceQuote]
) -> PortfolioValuation:
    by_id = {q.provider_id: q for q in quotes}

    values: list[tuple[Holding, float, float, float]] = []
    for h in holdings:
        quote = by_id.get(h.provider_id)
        price = quote.price_usd if quote else 0.0
        change = quote.change_24h_pct if quote else 0.0
        values.append((h, h.amount * price, price, change))

    total = sum(v for _, v, _, _ in values)
    valued = [
        HoldingValuation(
            symbol=h.symbol,
            provider_id=h.provider_id,
            amount=h.amount,
            value_usd=value,
            weight=value / total if total > 0 else 0.0,
            price=price,
            change_24h_pct=change,
        )
        for h, value, price, change in values
    ]
    return PortfolioValuation(total_value_usd=total, holdings=valued)


def daily_returns(prices: Sequence[float]) -> list[float]:
    """Simple returns; days whose previous price is not positive are skipped."""
    returns: list[float] = []
    for prev, cur in zip(prices, prices[1:]):
        if prev > 0:
            returns.append((cur - prev) / prev)
    return returns


def portfolio_returns(
    series: Sequence[HistoricalSeries], holdings: Sequence[HoldingValuation]
) -> list[float]:
    """
    Weighted daily portfolio returns over the common window.

    Per-asset return sequences are truncated to the shortest one. Series with
    no matching holding carry weight 0; weights are not renormalised.
    """
    weights: dict[str, float] = {}
    for h in holdings:
        weights[h.provider_id] = weights.get(h.provider_id, 0.0) + h.weight

    by_asset = [(s.provider_id, daily_returns(s.prices)) for s in series]
    if not by_asset:
        return []
    window = min(len(r) for _, r in by_asset)
    if window == 0:
        return []

    matrix = np.array([r[:window] for _, r in by_asset], dtype=float)
    w = np.array([weights.get(pid, 0.0) for pid, _ in by_asset], dtype=float)
    return [float(x) for x in w @ matrix]


def concentration_hhi(weights: Sequence[float]) -> float:
    return float(sum(w * w for w in weights))


def max_drawdown(returns: Sequence[float]) -> float:
    """Largest peak-to-trough fall of the compounded value, starting from 1."""
    if len(returns) == 0:
        return 0.0
    cumulative = np.cumprod(1.0 + np.asarray(returns, dtype=float))
    peaks = np.maximum.accumulate(np.concatenate(([1.0], cumulative)))[1:]
    drawdowns = (peaks - cumulative) / peaks
    return float(min(1.0, max(0.0, drawdowns.max())))


def risk_metrics(
    total_value: float,
    returns: Sequence[float],
    weights: Sequence[float],
) -> RiskMetrics:
    arr = np.asarray(returns, dtype=float)
    daily_vol = float(arr.std(ddof=1)) if arr.size >= 2 else 0.0
    annual_vol = daily_vol * math.sqrt(DAYS_PER_YEAR)

    sharpe = 0.0
    if daily_vol > 0:
        annual_return = float(arr.mean()) * DAYS_PER_YEAR
        sharpe = (annual_return - RISK_FREE_RATE) / annual_vol

    return RiskMetrics(
        var_95=total_value * Z_95 * daily_vol,
        var_99=total_value * Z_99 * daily_vol,
        volatility_annualized=annual_vol,
        sharpe_ratio=sharpe,
        concentration_hhi=concentration_hhi(weights),
        max_drawdown=max_drawdown(returns),
    )


def concentration_only_metrics(valuation: PortfolioValuation) -> RiskMetrics:
    """Metrics computable without any price history."""
    return RiskMetrics(concentration_hhi=concentration_hhi(valuation.weights))
