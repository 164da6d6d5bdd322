"""Aggregation orchestrator -- one stock analysis from fetch to score.

Each analysis:
  1. VALIDATE: ticker, duration, unit and prediction horizon
  2. FETCH: price series, market cap, TTM EPS, shares outstanding, net
     income, benchmark proxy (and sentiment when enabled) concurrently
  3. JOIN: all-or-nothing; the first failure cancels the other fetches
  4. COMPUTE: normalization, indicators and significance on a worker thread
  5. SCORE: the configured Scorer (heuristic or a remote model)

Fetch concurrency is bounded by a semaphore shared across analyses, so
concurrent requests cannot fan out past the configured fetch limit.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from tradr.analysis.history import PriceHistoryStore
from tradr.analysis.indicators import IndicatorEngine
from tradr.analysis.significance import SignificanceTester, window_start
from tradr.config import AnalysisSettings
from tradr.exceptions import UpstreamError, ValidationError
from tradr.logging import get_logger
from tradr.models import (
    AnalysisResult,
    DurationUnit,
    Fundamentals,
    HistoricalPrice,
    IndicatorSet,
    PriceSeries,
    SignificanceResult,
)
from tradr.scoring.base import Scorer

if TYPE_CHECKING:
    from tradr.data.net_income import NetIncomeStore
    from tradr.predictor.client import PredictorClient
    from tradr.upstream.alphavantage import AlphaVantageClient
    from tradr.upstream.finnhub import FinnhubClient
    from tradr.upstream.fmp import FmpClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class _Computed:
    series: PriceSeries
    indicators: IndicatorSet
    significance: SignificanceResult


def parse_unit(unit: str | DurationUnit) -> DurationUnit:
    """Case-insensitive duration unit lookup."""
    if isinstance(unit, DurationUnit):
        return unit
    try:
        return DurationUnit(str(unit).strip().lower())
    except ValueError:
        allowed = ", ".join(u.value for u in DurationUnit)
        raise ValidationError(f"Invalid unit '{unit}'; expected one of: {allowed}") from None


class AggregationOrchestrator:
    """Coordinates upstream fetches, analysis and scoring for one ticker.

    Args:
        alphavantage: Price series, benchmark proxy and sentiment source.
        finnhub: Market cap and TTM EPS source.
        fmp: Shares outstanding source.
        net_income: Local net income store.
        scorer: Scorer selected by configuration.
        settings: Concurrency, timeout and feature flags.
        history_store: PriceSeries builder.
        indicator_engine: Indicator calculator.
        significance_tester: Window-mean significance test.
        predictor: Prediction service client, used to validate horizons.
    """

    def __init__(
        self,
        alphavantage: AlphaVantageClient,
        finnhub: FinnhubClient,
        fmp: FmpClient,
        net_income: NetIncomeStore,
        scorer: Scorer,
        settings: AnalysisSettings | None = None,
        history_store: PriceHistoryStore | None = None,
        indicator_engine: IndicatorEngine | None = None,
        significance_tester: SignificanceTester | None = None,
        predictor: PredictorClient | None = None,
    ) -> None:
        self._alphavantage = alphavantage
        self._finnhub = finnhub
        self._fmp = fmp
        self._net_income = net_income
        self._scorer = scorer
        self._settings = settings or AnalysisSettings()
        self._history_store = history_store or PriceHistoryStore()
        self._indicator_engine = indicator_engine or IndicatorEngine()
        self._significance_tester = significance_tester or SignificanceTester()
        self._predictor = predictor
        self._fetch_semaphore = asyncio.Semaphore(self._settings.max_concurrent_fetches)
        self._executor = ThreadPoolExecutor(
            max_workers=self._settings.worker_threads,
            thread_name_prefix="tradr-analysis",
        )

    @property
    def scorer(self) -> Scorer:
        return self._scorer

    async def analyze(
        self,
        ticker: str,
        duration: int,
        unit: str | DurationUnit,
        horizon_days: int | None = None,
    ) -> AnalysisResult:
        """Run one full analysis.

        Raises:
            ValidationError: Bad ticker, duration, unit or horizon.
            UpstreamError: Any fetch failed (including RateLimitExhausted,
                UpstreamDataError and ParseError).
            InsufficientHistoryError: Fewer than 2 price points.
            PredictionServiceError: Remote scorer failed.
        """
        symbol, duration_unit, horizon = self._validate(ticker, duration, unit, horizon_days)
        request_id = uuid.uuid4().hex[:12]
        structlog.contextvars.bind_contextvars(ticker=symbol, request_id=request_id)
        try:
            logger.info(
                "analysis_started",
                duration=duration,
                unit=duration_unit.value,
                scorer=self._scorer.name,
            )
            fetched = await self._fetch_all(symbol)

            loop = asyncio.get_running_loop()
            computed = await loop.run_in_executor(
                self._executor,
                self._compute,
                fetched["price_series"],
                symbol,
                duration,
                duration_unit,
            )

            series = computed.series
            fundamentals = Fundamentals(
                market_cap=fetched["market_cap"],
                ttm_eps=fetched["ttm_eps"],
                shares_outstanding=fetched["shares_outstanding"],
                latest_net_income=fetched["net_income"],
                sp500_pe_proxy=fetched["benchmark_proxy"],
                latest_volume=series.latest.volume,
                volumes_20d=tuple(series.volumes_20d),
                sentiment=fetched.get("sentiment"),
            )

            score = await self._scorer.score(computed.indicators, fundamentals, horizon)

            message = computed.significance.message
            if score.message:
                message = f"{message} {score.message}"

            result = AnalysisResult(
                ticker=symbol,
                duration=duration,
                unit=duration_unit,
                latest_price=series.latest.close,
                indicators=computed.indicators,
                significance=computed.significance,
                score=score,
                fundamentals=fundamentals,
                historical_prices=[HistoricalPrice(b.date, b.close) for b in series.bars],
                message=message,
            )
            logger.info(
                "analysis_completed",
                points=len(series),
                significant=computed.significance.is_significant,
                score=score.score,
                category=score.category,
            )
            return result
        finally:
            structlog.contextvars.unbind_contextvars("ticker", "request_id")

    async def close(self) -> None:
        """Shut down the worker pool. In-flight computations finish first."""
        await asyncio.to_thread(self._executor.shutdown, True)
        logger.info("orchestrator_closed")

    # ──────────────────────────────────────────────────────────────
    # Validation
    # ──────────────────────────────────────────────────────────────

    def _validate(
        self,
        ticker: str,
        duration: int,
        unit: str | DurationUnit,
        horizon_days: int | None,
    ) -> tuple[str, DurationUnit, int | None]:
        symbol = (ticker or "").strip().upper()
        if not symbol:
            raise ValidationError("Ticker must not be empty")
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise ValidationError(f"Duration must be a positive integer, got {duration!r}")
        duration_unit = parse_unit(unit)

        horizon = horizon_days
        if self._predictor is not None:
            if horizon is None:
                horizon = self._predictor.default_horizon
            self._predictor.validate_horizon(horizon)
        return symbol, duration_unit, horizon

    # ──────────────────────────────────────────────────────────────
    # Fetch / join
    # ──────────────────────────────────────────────────────────────

    def _fetch_plan(self, ticker: str) -> dict[str, Callable[[], Awaitable[Any]]]:
        plan: dict[str, Callable[[], Awaitable[Any]]] = {
            "price_series": lambda: self._alphavantage.fetch_daily_series(ticker),
            "market_cap": lambda: self._finnhub.fetch_market_cap(ticker),
            "ttm_eps": lambda: self._finnhub.fetch_ttm_eps(ticker),
            "shares_outstanding": lambda: self._fmp.fetch_shares_outstanding(ticker),
            "net_income": lambda: self._net_income.latest_net_income(ticker),
            "benchmark_proxy": self._alphavantage.fetch_benchmark_proxy,
        }
        if self._settings.sentiment_enabled:
            plan["sentiment"] = lambda: self._alphavantage.fetch_news_sentiment(ticker)
        return plan

    async def _guarded(self, name: str, start: Callable[[], Awaitable[Any]]) -> Any:
        """Run one fetch under the shared semaphore and optional timeout.

        The fetch coroutine is only created once a semaphore slot is held.
        """
        async with self._fetch_semaphore:
            timeout = self._settings.fetch_timeout_seconds
            if timeout is None:
                return await start()
            try:
                return await asyncio.wait_for(start(), timeout)
            except asyncio.TimeoutError as e:
                raise UpstreamError(f"{name} fetch timed out after {timeout}s", source=name) from e

    async def _fetch_all(self, ticker: str) -> dict[str, Any]:
        """Run every fetch concurrently; all succeed or the first failure is raised."""
        tasks = {
            name: asyncio.create_task(self._guarded(name, start), name=f"fetch:{name}")
            for name, start in self._fetch_plan(ticker).items()
        }
        try:
            done, pending = await asyncio.wait(
                tasks.values(), return_when=asyncio.FIRST_EXCEPTION
            )
        except asyncio.CancelledError:
            await _cancel_all(tasks.values())
            raise

        for name, task in tasks.items():
            if task not in done:
                continue
            exc = task.exception()
            if exc is None:
                continue
            await _cancel_all(pending)
            logger.warning(
                "fetch_failed",
                fetch=name,
                error_type=type(exc).__name__,
                error=str(exc),
                cancelled=len(pending),
            )
            raise exc

        return {name: task.result() for name, task in tasks.items()}

    # ──────────────────────────────────────────────────────────────
    # CPU-bound analysis (runs on the worker pool)
    # ──────────────────────────────────────────────────────────────

    def _compute(
        self,
        raw_series: dict[str, Any],
        ticker: str,
        duration: int,
        unit: DurationUnit,
    ) -> _Computed:
        series = self._history_store.normalize(raw_series, ticker)
        latest = series.latest
        indicators = self._indicator_engine.compute(series)
        significance = self._significance_tester.test(
            series,
            latest.close,
            window_start(latest.date, duration, unit),
            latest.date,
            duration,
            unit,
        )
        return _Computed(series=series, indicators=indicators, significance=significance)


async def _cancel_all(tasks) -> None:  # type: ignore[no-untyped-def]
    tasks = [t for t in tasks if not t.done()]
    for task in tasks:
        task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
