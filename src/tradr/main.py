"""Entry point for the stock analysis service.

Wires all components together and serves the FastAPI app with uvicorn.
Components are built in the lifespan so every httpx client and the
SQLite connection belong to the server's event loop.

Component wiring order (in build_components):
1. httpx clients (one per upstream, plus the predictor)
2. RetryPolicy and one RateLimitedFetcher per upstream
3. ApiKeyPools (Alpha Vantage primary/secondary, Finnhub, FMP)
4. Upstream clients (Alpha Vantage, Finnhub with FX, FMP)
5. FundamentalsDatabase + NetIncomeStore
6. PredictorClient and the configured Scorer
7. AggregationOrchestrator
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import httpx
import uvicorn
from fastapi import FastAPI

from tradr.analysis.history import PriceHistoryStore
from tradr.analysis.indicators import IndicatorEngine
from tradr.analysis.significance import SignificanceTester
from tradr.api.app import create_app
from tradr.config import AppSettings
from tradr.data.database import FundamentalsDatabase
from tradr.data.net_income import NetIncomeStore
from tradr.logging import get_logger, setup_logging
from tradr.orchestrator import AggregationOrchestrator
from tradr.predictor.client import PredictorClient
from tradr.scoring.base import Scorer
from tradr.scoring.heuristic import HeuristicScorer
from tradr.scoring.remote import RandomForestScorer, RegressionScorer
from tradr.upstream.alphavantage import AlphaVantageClient
from tradr.upstream.fetcher import RateLimitedFetcher
from tradr.upstream.finnhub import FinnhubClient
from tradr.upstream.fmp import FmpClient
from tradr.upstream.fx import CurrencyConverter
from tradr.upstream.keys import ApiKeyPool
from tradr.upstream.retry import RetryPolicy


def build_scorer(settings: AppSettings, predictor: PredictorClient) -> Scorer:
    """Select the Scorer named by ANALYSIS_SCORER_KIND."""
    kind = settings.analysis.scorer_kind
    if kind == "heuristic":
        return HeuristicScorer(settings.scoring)
    if kind == "regression":
        return RegressionScorer(predictor, settings.scoring)
    return RandomForestScorer(predictor, settings.scoring)


async def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the full dependency graph from settings.

    Connects the fundamentals database; everything else is lazy. If any
    step fails, the clients and database opened so far are closed before
    the error propagates.

    Raises:
        ValueError: A required API key pool is empty.
    """
    timeout = httpx.Timeout(settings.upstream.timeout_seconds)
    http_clients = {
        "alphavantage": httpx.AsyncClient(base_url=settings.alphavantage.base_url, timeout=timeout),
        "finnhub": httpx.AsyncClient(base_url=settings.finnhub.base_url, timeout=timeout),
        "fmp": httpx.AsyncClient(base_url=settings.fmp.base_url, timeout=timeout),
        "fx": httpx.AsyncClient(base_url=settings.fx.base_url, timeout=timeout),
        "predictor": httpx.AsyncClient(
            base_url=settings.predictor.base_url,
            timeout=httpx.Timeout(settings.predictor.timeout_seconds),
        ),
    }

    database = FundamentalsDatabase(settings.net_income.db_path)
    try:
        retry_policy = RetryPolicy.from_settings(settings.upstream)
        history_store = PriceHistoryStore(volume_window=settings.indicators.volume_window)

        alphavantage = AlphaVantageClient(
            fetcher=RateLimitedFetcher(http_clients["alphavantage"], retry_policy),
            primary_pool=ApiKeyPool("alphavantage-primary", settings.alphavantage.primary_keys),
            secondary_pool=ApiKeyPool("alphavantage-secondary", settings.alphavantage.secondary_keys),
            settings=settings.alphavantage,
            history_store=history_store,
        )
        finnhub = FinnhubClient(
            fetcher=RateLimitedFetcher(http_clients["finnhub"], retry_policy),
            pool=ApiKeyPool("finnhub", settings.finnhub.api_keys),
            converter=CurrencyConverter(http_clients["fx"]),
        )
        fmp = FmpClient(
            fetcher=RateLimitedFetcher(http_clients["fmp"], retry_policy),
            pool=ApiKeyPool("fmp", settings.fmp.api_keys),
        )

        await database.connect()

        predictor = PredictorClient(http_clients["predictor"], settings.predictor)
        scorer = build_scorer(settings, predictor)

        orchestrator = AggregationOrchestrator(
            alphavantage=alphavantage,
            finnhub=finnhub,
            fmp=fmp,
            net_income=NetIncomeStore(database),
            scorer=scorer,
            settings=settings.analysis,
            history_store=history_store,
            indicator_engine=IndicatorEngine(settings.indicators),
            significance_tester=SignificanceTester(settings.significance),
            predictor=predictor,
        )
    except BaseException:
        await release_resources(http_clients, database)
        raise

    return {
        "http_clients": http_clients,
        "database": database,
        "orchestrator": orchestrator,
    }


async def release_resources(
    http_clients: dict[str, httpx.AsyncClient], database: FundamentalsDatabase
) -> None:
    """Close every httpx client and the database connection."""
    for client in http_clients.values():
        await client.aclose()
    await database.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build components on startup, release them on shutdown."""
    logger = get_logger("tradr.main")
    settings: AppSettings = app.state.settings

    components = await build_components(settings)
    app.state.orchestrator = components["orchestrator"]

    logger.info("lifespan_started", scorer=components["orchestrator"].scorer.name)

    try:
        yield
    finally:
        try:
            await components["orchestrator"].close()
        finally:
            await release_resources(components["http_clients"], components["database"])
        logger.info("tradr_stopped")


async def run() -> None:
    """Run the analysis service."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("tradr.main")

    app = create_app(lifespan=lifespan)
    app.state.settings = settings

    logger.info(
        "starting_server",
        host=settings.server.host,
        port=settings.server.port,
        scorer=settings.analysis.scorer_kind,
    )

    config = uvicorn.Config(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level="warning",  # Suppress uvicorn access logs
    )
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
