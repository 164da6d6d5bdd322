"""Alpha Vantage client: daily series, S&P 500 benchmark proxy, news sentiment.

Alpha Vantage signals quota exhaustion with a "Note" or "Information" key
in an otherwise normal 200 response, and hard errors (unknown symbol, bad
function) with "Error Message". The ticker's own series uses the primary
key pool; the benchmark and sentiment calls use the secondary pool so a
burst of analyses does not starve one pool.
"""

from decimal import Decimal
from typing import Any

from tradr.analysis.history import TIME_SERIES_KEY, PriceHistoryStore
from tradr.config import AlphaVantageSettings
from tradr.exceptions import InsufficientHistoryError, UpstreamDataError
from tradr.logging import get_logger
from tradr.upstream.fetcher import RateLimitedFetcher, RequestSpec
from tradr.upstream.keys import ApiKeyPool
from tradr.upstream.parsing import require_decimal

logger = get_logger(__name__)

RATE_LIMIT_KEYS = ("Note", "Information")
ERROR_KEYS = ("Error Message",)

DAILY_FUNCTION = "TIME_SERIES_DAILY"
NEWS_SENTIMENT_FUNCTION = "NEWS_SENTIMENT"


class AlphaVantageClient:
    """Typed access to the Alpha Vantage endpoints the analysis needs.

    Args:
        fetcher: Rate-limit-aware fetcher bound to the Alpha Vantage base URL.
        primary_pool: Keys for the analysed ticker's daily series.
        secondary_pool: Keys for the benchmark series and news sentiment.
        settings: Benchmark ticker and output size.
        history_store: Normalizer used to read the benchmark series.
    """

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        primary_pool: ApiKeyPool,
        secondary_pool: ApiKeyPool,
        settings: AlphaVantageSettings,
        history_store: PriceHistoryStore | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._primary_pool = primary_pool
        self._secondary_pool = secondary_pool
        self._settings = settings
        self._history_store = history_store or PriceHistoryStore()

    async def fetch_daily_series(self, ticker: str) -> dict[str, Any]:
        """Fetch the raw daily close/volume payload for ``ticker``."""
        payload = await self._fetch_daily(ticker, self._primary_pool, "daily")
        logger.info(
            "daily_series_fetched",
            ticker=ticker,
            points=len(payload[TIME_SERIES_KEY]),
        )
        return payload

    async def fetch_benchmark_proxy(self) -> Decimal:
        """Compute the S&P 500 P/E proxy: latest benchmark close / mean close.

        The mean runs over every available point (at most 100 with the
        compact output size).
        """
        ticker = self._settings.benchmark_ticker
        source = f"alphavantage:benchmark:{ticker}"
        payload = await self._fetch_daily(ticker, self._secondary_pool, "benchmark")
        try:
            series = self._history_store.normalize(payload, ticker=ticker)
        except InsufficientHistoryError as e:
            raise UpstreamDataError(f"Benchmark {ticker} series too short: {e}", source=source) from e
        closes = series.closes
        mean_close = sum(closes, Decimal("0")) / len(closes)
        if mean_close == 0:
            raise UpstreamDataError(f"Benchmark {ticker} mean close is zero", source=source)
        proxy = series.latest.close / mean_close
        logger.debug("benchmark_proxy_computed", ticker=ticker, points=len(closes), proxy=str(proxy))
        return proxy

    async def fetch_news_sentiment(self, ticker: str) -> Decimal | None:
        """Overall sentiment score of the most recent article, or None if no feed."""
        source = f"alphavantage:sentiment:{ticker}"
        payload = await self._fetcher.fetch(
            RequestSpec(
                source=source,
                path="/query",
                params={"function": NEWS_SENTIMENT_FUNCTION, "tickers": ticker},
                rate_limit_keys=RATE_LIMIT_KEYS,
                error_keys=ERROR_KEYS,
            ),
            self._secondary_pool,
        )
        feed = payload.get("feed") if isinstance(payload, dict) else None
        if not isinstance(feed, list) or not feed:
            logger.info("news_sentiment_unavailable", ticker=ticker)
            return None
        first = feed[0]
        if not isinstance(first, dict) or first.get("overall_sentiment_score") is None:
            return None
        return require_decimal(first["overall_sentiment_score"], "overall_sentiment_score", source)

    async def _fetch_daily(self, ticker: str, pool: ApiKeyPool, label: str) -> dict[str, Any]:
        source = f"alphavantage:{label}:{ticker}"
        payload = await self._fetcher.fetch(
            RequestSpec(
                source=source,
                path="/query",
                params={
                    "function": DAILY_FUNCTION,
                    "symbol": ticker,
                    "outputsize": self._settings.output_size,
                },
                rate_limit_keys=RATE_LIMIT_KEYS,
                error_keys=ERROR_KEYS,
            ),
            pool,
        )
        if not isinstance(payload, dict) or not payload.get(TIME_SERIES_KEY):
            raise UpstreamDataError(
                f"Could not find '{TIME_SERIES_KEY}' in {source} response", source=source
            )
        return payload
