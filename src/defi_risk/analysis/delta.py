from defi_risk.models.analysis import AnalysisResult, ResultDelta


def compare_results(previous: AnalysisResult, current: AnalysisResult) -> ResultDelta:
    """Change in value and headline metrics from ``previous`` to ``current``."""
    prev_value = previous.valuation.total_value_usd
    change = current.valuation.total_value_usd - prev_value
    prev_risk, cur_risk = previous.risk, current.risk
    return ResultDelta(
        value_change_usd=change,
        value_change_pct=change / prev_value if prev_value > 0 else None,
        var_95=cur_risk.var_95 - prev_risk.var_95,
        volatility_annualized=(
            cur_risk.volatility_annualized - prev_risk.volatility_annualized
        ),
        sharpe_ratio=cur_risk.sharpe_ratio - prev_risk.sharpe_ratio,
        concentration_hhi=cur_risk.concentration_hhi - prev_risk.concentration_hhi,
        max_drawdown=cur_risk.max_drawdown - prev_risk.max_drawdown,
    )
