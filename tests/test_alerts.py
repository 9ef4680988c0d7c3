import itertools

from defi_risk.analysis.alerts import generate_alerts
from defi_risk.config import RiskThresholds
from defi_risk.models.analysis import AlertLevel, PortfolioValuation, RiskMetrics

TOTAL = 100_000.0


def alerts_for(total: float = TOTAL, **risk: float):
    return generate_alerts(
        PortfolioValuation(total_value_usd=total, holdings=[]),
        RiskMetrics(**risk),
        RiskThresholds(),
    )


class TestVaRAlert:
    def test_critical_only(self):
        alerts = alerts_for(var_95=6000.0)
        assert len(alerts) == 1
        a = alerts[0]
        assert a.metric == "VaR (95%)"
        assert a.level == AlertLevel.CRITICAL
        assert a.value == 0.06
        assert a.threshold == 0.05
        assert a.message == "Daily VaR is 6.0% of portfolio (threshold: 5.0%)"

    def test_warning(self):
        alerts = alerts_for(var_95=4000.0)
        assert [(a.metric, a.level) for a in alerts] == [
            ("VaR (95%)", AlertLevel.WARNING)
        ]
        assert alerts[0].threshold == 0.03

    def test_below_threshold(self):
        assert alerts_for(var_95=2000.0) == []

    def test_equal_to_threshold_does_not_fire(self):
        assert alerts_for(var_95=3000.0) == []


class TestVolatilityAlert:
    def test_critical(self):
        alerts = alerts_for(volatility_annualized=0.9)
        assert len(alerts) == 1
        assert alerts[0].level == AlertLevel.CRITICAL
        assert alerts[0].message == "Annualised volatility at 90% (threshold: 80%)"

    def test_warning(self):
        alerts = alerts_for(volatility_annualized=0.7)
        assert alerts[0].level == AlertLevel.WARNING
        assert alerts[0].threshold == 0.6


class TestConcentrationAlert:
    def test_single_holding_is_critical(self):
        alerts = alerts_for(concentration_hhi=1.0)
        assert len(alerts) == 1
        assert alerts[0].metric == "Concentration"
        assert alerts[0].level == AlertLevel.CRITICAL
        assert "highly concentrated" in alerts[0].message

    def test_moderate(self):
        alerts = alerts_for(concentration_hhi=0.4)
        assert alerts[0].level == AlertLevel.WARNING
        assert "moderately concentrated" in alerts[0].message
        assert "(threshold: 0.35)" in alerts[0].message

    def test_diversified(self):
        assert alerts_for(concentration_hhi=0.2) == []


class TestDrawdownAlert:
    def test_critical(self):
        alerts = alerts_for(max_drawdown=0.2)
        assert len(alerts) == 1
        assert alerts[0].level == AlertLevel.CRITICAL
        assert alerts[0].message == "Max drawdown at 20.0% (threshold: 15%)"

    def test_no_warning_tier(self):
        assert alerts_for(max_drawdown=0.1) == []


class TestGenerateAlerts:
    def test_zero_value_portfolio_never_alerts(self):
        alerts = alerts_for(
            total=0.0,
            var_95=1e9,
            volatility_annualized=5.0,
            concentration_hhi=1.0,
            max_drawdown=0.9,
        )
        assert alerts == []

    def test_fixed_order(self):
        alerts = alerts_for(
            var_95=10_000.0,
            volatility_annualized=0.95,
            concentration_hhi=0.6,
            max_drawdown=0.3,
        )
        assert [a.metric for a in alerts] == [
            "VaR (95%)",
            "Volatility",
            "Concentration",
            "Max Drawdown",
        ]
        assert all(a.level == AlertLevel.CRITICAL for a in alerts)

    def test_at_most_one_alert_per_metric(self):
        grid = itertools.product(
            [0.0, 3500.0, 8000.0],
            [0.1, 0.7, 1.2],
            [0.1, 0.4, 0.9],
            [0.0, 0.5],
        )
        for var_95, vol, hhi, dd in grid:
            alerts = alerts_for(
                var_95=var_95,
                volatility_annualized=vol,
                concentration_hhi=hhi,
                max_drawdown=dd,
            )
            metrics = [a.metric for a in alerts]
            assert len(metrics) == len(set(metrics))

    def test_custom_thresholds(self):
        thresholds = RiskThresholds(hhi_warning=0.1, hhi_critical=0.2)
        alerts = generate_alerts(
            PortfolioValuation(total_value_usd=TOTAL, holdings=[]),
            RiskMetrics(concentration_hhi=0.15),
            thresholds,
        )
        assert alerts[0].level == AlertLevel.WARNING
        assert alerts[0].threshold == 0.1
