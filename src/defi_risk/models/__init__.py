from defi_risk.models.analysis import (
    Alert,
    AlertLevel,
    AnalysisResult,
    DataSource,
    HoldingValuation,
    PortfolioValuation,
    ResultDelta,
    RiskMetrics,
)
from defi_risk.models.market import (
    BucketStatus,
    HistoricalBatch,
    HistoricalSeries,
    PriceQuote,
)
from defi_risk.models.portfolio import Holding, Portfolio

__all__ = [
    "Alert",
    "AlertLevel",
    "AnalysisResult",
    "BucketStatus",
    "DataSource",
    "HistoricalBatch",
    "HistoricalSeries",
    "Holding",
    "HoldingValuation",
    "Portfolio",
    "PortfolioValuation",
    "PriceQuote",
    "ResultDelta",
    "RiskMetrics",
]
