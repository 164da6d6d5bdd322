"""Finnhub client: market capitalization and trailing-twelve-month EPS.

Finnhub reports ``marketCapitalization`` in millions of the listing
currency; it is scaled to units and converted to USD here. Finnhub signals
errors with an ``{"error": ...}`` body and its quota with HTTP 429, which
is an HTTP-level error and therefore fatal.
"""

from decimal import Decimal

from tradr.exceptions import UpstreamDataError
from tradr.logging import get_logger
from tradr.upstream.fetcher import RateLimitedFetcher, RequestSpec
from tradr.upstream.fx import CurrencyConverter
from tradr.upstream.keys import ApiKeyPool
from tradr.upstream.parsing import require_decimal

logger = get_logger(__name__)

ERROR_KEYS = ("error",)
MARKET_CAP_KEY = "marketCapitalization"
TTM_EPS_KEY = "epsTTM"

_MILLION = Decimal("1000000")


class FinnhubClient:
    """Typed access to Finnhub's company profile and metrics endpoints.

    Args:
        fetcher: Fetcher bound to the Finnhub base URL.
        pool: Finnhub API keys.
        converter: FX lookup for non-USD listings.
    """

    def __init__(
        self,
        fetcher: RateLimitedFetcher,
        pool: ApiKeyPool,
        converter: CurrencyConverter,
    ) -> None:
        self._fetcher = fetcher
        self._pool = pool
        self._converter = converter

    async def fetch_market_cap(self, ticker: str) -> Decimal:
        """Market capitalization in USD."""
        source = f"finnhub:profile:{ticker}"
        payload = await self._fetcher.fetch(
            RequestSpec(
                source=source,
                path="/stock/profile2",
                params={"symbol": ticker},
                key_param="token",
                error_keys=ERROR_KEYS,
            ),
            self._pool,
        )
        if not isinstance(payload, dict) or not payload:
            raise UpstreamDataError(
                f"{source} returned an empty profile (unknown ticker?)", source=source
            )
        if MARKET_CAP_KEY not in payload:
            raise UpstreamDataError(f"Market cap data not found for {ticker}", source=source)

        market_cap = require_decimal(payload[MARKET_CAP_KEY], MARKET_CAP_KEY, source) * _MILLION
        currency = str(payload.get("currency") or "USD").upper()
        if currency != "USD":
            rate = await self._converter.get_rate(currency, "USD")
            logger.info("market_cap_converted", ticker=ticker, currency=currency, rate=str(rate))
            market_cap *= rate

        logger.debug("market_cap_fetched", ticker=ticker, market_cap=str(market_cap))
        return market_cap

    async def fetch_ttm_eps(self, ticker: str) -> Decimal:
        """Pre-computed trailing-twelve-month EPS from ``/stock/metric``."""
        source = f"finnhub:metric:{ticker}"
        payload = await self._fetcher.fetch(
            RequestSpec(
                source=source,
                path="/stock/metric",
                params={"symbol": ticker, "metric": "all"},
                key_param="token",
                error_keys=ERROR_KEYS,
            ),
            self._pool,
        )
        metric = payload.get("metric") if isinstance(payload, dict) else None
        if not isinstance(metric, dict) or not metric:
            raise UpstreamDataError(
                f"Metric data block not found in {source} response", source=source
            )
        eps = require_decimal(metric.get(TTM_EPS_KEY), TTM_EPS_KEY, source)
        logger.debug("ttm_eps_fetched", ticker=ticker, eps=str(eps))
        return eps
