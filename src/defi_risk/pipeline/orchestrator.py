"""One analysis cycle: prices, valuation, history, risk, alerts, persist, notify."""

import logging
from enum import StrEnum
from pathlib import Path

from defi_risk.analysis.alerts import generate_alerts
from defi_risk.analysis.risk import (
    concentration_only_metrics,
    portfolio_returns,
    risk_metrics,
    valuate_portfolio,
)
from defi_risk.clock import Clock, iso_timestamp
from defi_risk.config import RiskThresholds
from defi_risk.data.historical_fetcher import HistoricalFetcher
from defi_risk.data.price_source import PriceSource
from defi_risk.data.retry import RetryPolicy
from defi_risk.errors import StoreError
from defi_risk.models.analysis import (
    AnalysisResult,
    DataSource,
    PortfolioValuation,
    RiskMetrics,
)
from defi_risk.models.market import HistoricalBatch
from defi_risk.models.portfolio import Portfolio
from defi_risk.output.notifier import Notifier
from defi_risk.store import PortfolioStore

logger = logging.getLogger(__name__)


class CycleState(StrEnum):
    IDLE = "idle"
    FETCHING_CURRENT = "fetching_current"
    VALUATING = "valuating"
    FETCHING_HISTORICAL = "fetching_historical"
    COMPUTING_LIVE_RISK = "computing_live_risk"
    DEGRADING_TO_CACHE = "degrading_to_cache"
    DEGRADING_TO_CONCENTRATION_ONLY = "degrading_to_concentration_only"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    DONE = "done"
    FAILED = "failed"


class AnalysisOrchestrator:
    """
    Runs analysis cycles against explicitly injected collaborators.

    Only a failed current-price fetch fails a cycle. A failed historical batch
    degrades to the last persisted metrics, or to concentration-only metrics
    when there is no usable history. Persist and notify failures are logged.
    """

    def __init__(
        self,
        price_source: PriceSource,
        fetcher: HistoricalFetcher,
        store: PortfolioStore,
        notifier: Notifier,
        clock: Clock,
        retry_policy: RetryPolicy,
        history_path: Path,
        thresholds: RiskThresholds | None = None,
    ) -> None:
        self.price_source = price_source
        self.fetcher = fetcher
        self.store = store
        self.notifier = notifier
        self.clock = clock
        self.retry_policy = retry_policy
        self.history_path = Path(history_path)
        self.thresholds = thresholds or RiskThresholds()
        self._state = CycleState.IDLE

    @property
    def state(self) -> CycleState:
        return self._state

    async def run(self, portfolio: Portfolio) -> AnalysisResult:
        logger.info(
            "Starting portfolio analysis for %s (%d holdings)",
            portfolio.name,
            len(portfolio.holdings),
        )
        ids = portfolio.provider_ids

        self._transition(CycleState.FETCHING_CURRENT)
        try:
            quotes = await self.retry_policy.call(self.price_source.current_prices, ids)
        except Exception:
            self._transition(CycleState.FAILED)
            logger.error("Current price fetch failed after retries")
            raise

        self._transition(CycleState.VALUATING)
        valuation = valuate_portfolio(portfolio.holdings, quotes)

        self._transition(CycleState.FETCHING_HISTORICAL)
        batch = await self.fetcher.fetch_all(ids)
        risk, source = self._compute_risk(batch, valuation)

        alerts = generate_alerts(valuation, risk, self.thresholds)
        result = AnalysisResult(
            timestamp=iso_timestamp(self.clock),
            valuation=valuation,
            risk=risk,
            alerts=alerts,
            data_source=source,
        )

        self._transition(CycleState.PERSISTING)
        try:
            self.store.save(self.history_path, result)
        except StoreError as e:
            logger.warning("Could not persist results: %s", e)

        self._transition(CycleState.NOTIFYING)
        try:
            self.notifier.notify(alerts)
        except Exception:
            logger.warning("Alert notification failed", exc_info=True)

        self._transition(CycleState.DONE)
        logger.info(
            "Analysis complete: value=%.2f var95=%.2f alerts=%d source=%s",
            valuation.total_value_usd,
            risk.var_95,
            len(alerts),
            source,
        )
        return result

    def _compute_risk(
        self, batch: HistoricalBatch, valuation: PortfolioValuation
    ) -> tuple[RiskMetrics, DataSource]:
        if batch.ok:
            self._transition(CycleState.COMPUTING_LIVE_RISK)
            returns = portfolio_returns(batch.series, valuation.holdings)
            metrics = risk_metrics(
                valuation.total_value_usd, returns, valuation.weights
            )
            return metrics, DataSource.LIVE

        logger.warning("Historical prices unavailable (%s), degrading", batch.error)
        self._transition(CycleState.DEGRADING_TO_CACHE)
        try:
            history = self.store.load_history(self.history_path)
        except StoreError as e:
            logger.warning("History unreadable, treating as empty: %s", e)
            history = []

        if history:
            cached = history[-1]
            # Reused verbatim; weights may have moved since this snapshot.
            logger.warning(
                "Reusing risk metrics from %s; they may not match current valuation",
                cached.timestamp,
            )
            return cached.risk, DataSource.CACHED

        self._transition(CycleState.DEGRADING_TO_CONCENTRATION_ONLY)
        return concentration_only_metrics(valuation), DataSource.CONCENTRATION_ONLY

    def _transition(self, state: CycleState) -> None:
        logger.debug("Analysis state %s -> %s", self._state, state)
        self._state = state
