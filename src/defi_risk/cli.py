import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from defi_risk.clock import SystemClock
from defi_risk.config import AppConfig
from defi_risk.data.coincap_client import CoinCapProvider
from defi_risk.data.coingecko_client import CoinGeckoProvider
from defi_risk.data.historical_fetcher import HistoricalFetcher
from defi_risk.data.price_source import PriceSource
from defi_risk.data.provider_base import build_client
from defi_risk.data.rate_limiter import TokenBucket
from defi_risk.data.retry import RetryPolicy
from defi_risk.data.static_provider import StaticPriceProvider
from defi_risk.errors import RiskEngineError, StoreError
from defi_risk.models.analysis import AnalysisResult
from defi_risk.models.portfolio import Holding, Portfolio
from defi_risk.output.notifier import ConsoleNotifier
from defi_risk.output.renderer import AnalysisRenderer
from defi_risk.pipeline.monitor import MonitorLoop
from defi_risk.pipeline.orchestrator import AnalysisOrchestrator
from defi_risk.store import JsonPortfolioStore, MemoryPortfolioStore, PortfolioStore

logger = logging.getLogger(__name__)
console = Console()

DEMO_PORTFOLIO = Portfolio(
    name="Demo DeFi Portfolio",
    holdings=[
        Holding(symbol="BTC", provider_id="bitcoin", amount=0.5),
        Holding(symbol="ETH", provider_id="ethereum", amount=8.0),
        Holding(symbol="SOL", provider_id="solana", amount=50.0),
        Holding(symbol="AVAX", provider_id="avalanche-2", amount=100.0),
        Holding(symbol="LINK", provider_id="chainlink", amount=200.0),
    ],
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="defi-risk",
        description="Crypto portfolio risk analysis and monitoring",
    )
    p.add_argument(
        "--monitor",
        action="store_true",
        help="Re-run the analysis every MONITOR_INTERVAL seconds until interrupted",
    )
    p.add_argument(
        "--portfolio",
        type=Path,
        default=None,
        help="Portfolio JSON file (overrides PORTFOLIO_PATH)",
    )
    p.add_argument(
        "--demo",
        action="store_true",
        help="Use deterministic built-in prices and portfolio (no network, no files)",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return p


def build_orchestrator(
    config: AppConfig,
    client: httpx.AsyncClient,
    store: PortfolioStore,
    *,
    demo: bool = False,
) -> AnalysisOrchestrator:
    """Wire the live (or demo) collaborators into an orchestrator."""
    bucket = TokenBucket(config.rate_limit.capacity, config.rate_limit.refill_per_second)
    if demo:
        source = PriceSource(StaticPriceProvider(), None, bucket)
    else:
        source = PriceSource(
            CoinGeckoProvider(client, config.coingecko_base_url),
            CoinCapProvider(client, config.coincap_base_url, config.coincap_api_key),
            bucket,
        )
    retry = RetryPolicy(config.max_retries, config.retry_base_delay)
    fetcher = HistoricalFetcher(
        source, retry, config.price_feed_concurrency, config.history_days
    )
    return AnalysisOrchestrator(
        price_source=source,
        fetcher=fetcher,
        store=store,
        notifier=ConsoleNotifier(console),
        clock=SystemClock(),
        retry_policy=retry,
        history_path=Path(config.history_path),
        thresholds=config.thresholds,
    )


def _latest_result(store: PortfolioStore, path: Path) -> AnalysisResult | None:
    try:
        history = store.load_history(path)
    except StoreError as e:
        logger.warning("Ignoring unreadable history: %s", e)
        return None
    return history[-1] if history else None


async def run_single(
    orchestrator: AnalysisOrchestrator,
    portfolio: Portfolio,
    store: PortfolioStore,
    renderer: AnalysisRenderer,
) -> AnalysisResult:
    previous = _latest_result(store, orchestrator.history_path)
    result = await orchestrator.run(portfolio)
    renderer.render(result, previous)
    return result


async def run_monitor(
    orchestrator: AnalysisOrchestrator,
    portfolio: Portfolio,
    interval: float,
    renderer: AnalysisRenderer,
) -> MonitorLoop:
    def show(current: AnalysisResult, previous: AnalysisResult | None) -> None:
        renderer.render(current, previous)
        console.print(f"  [dim]Next update in {interval:g}s... (Ctrl+C to exit)[/dim]")
        console.rule(style="dim")

    monitor = MonitorLoop(lambda: orchestrator.run(portfolio), interval, show)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, monitor.stop)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on this platform or thread.
            pass

    await monitor.run()
    return monitor


async def _run(args: argparse.Namespace, config: AppConfig) -> None:
    store: PortfolioStore
    if args.demo:
        console.print("[dim]Demo mode: deterministic prices, no network[/dim]")
        store = MemoryPortfolioStore(DEMO_PORTFOLIO)
    else:
        store = JsonPortfolioStore()

    portfolio_path = args.portfolio or Path(config.portfolio_path)
    logger.info("Loading portfolio from %s", portfolio_path)
    portfolio = store.load(portfolio_path)
    logger.info(
        "Portfolio %s loaded (%d holdings)", portfolio.name, len(portfolio.holdings)
    )

    renderer = AnalysisRenderer(console, config.thresholds)
    async with build_client() as client:
        orchestrator = build_orchestrator(config, client, store, demo=args.demo)
        if args.monitor:
            await run_monitor(
                orchestrator, portfolio, config.monitor_interval_seconds, renderer
            )
        else:
            await run_single(orchestrator, portfolio, store, renderer)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        level = logging.DEBUG
    elif args.monitor:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    load_dotenv()

    try:
        config = AppConfig.from_env()
        asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        sys.exit(0 if args.monitor else 1)
    except RiskEngineError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
