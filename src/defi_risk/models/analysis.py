from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class AlertLevel(StrEnum):
    WARNING = "warning"
    CRITICAL = "critical"


class DataSource(StrEnum):
    LIVE = "live"
    CACHED = "cached"
    CONCENTRATION_ONLY = "concentration_only"


class HoldingValuation(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    provider_id: str
    amount: float
    value_usd: float
    weight: float
    price: float
    change_24h_pct: float = 0.0


class PortfolioValuation(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_value_usd: float = 0.0
    holdings: list[HoldingValuation] = []

    @property
    def weights(self) -> list[float]:
        return [h.weight for h in self.holdings]


class RiskMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    var_95: float = 0.0
    var_99: float = 0.0
    volatility_annualized: float = 0.0
    sharpe_ratio: float = 0.0
    concentration_hhi: float = 0.0
    max_drawdown: float = 0.0


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: AlertLevel
    metric: str
    message: str
    value: float
    threshold: float


class AnalysisResult(BaseModel):
    """Snapshot of one analysis cycle, persisted to history."""

    model_config = ConfigDict(frozen=True)

    timestamp: str
    valuation: PortfolioValuation
    risk: RiskMetrics
    alerts: list[Alert] = []
    data_source: DataSource = DataSource.LIVE


class ResultDelta(BaseModel):
    """Current minus previous for the headline figures."""

    model_config = ConfigDict(frozen=True)

    value_change_usd: float
    value_change_pct: float | None = None
    var_95: float
    volatility_annualized: float
    sharpe_ratio: float
    concentration_hhi: float
    max_drawdown: float
