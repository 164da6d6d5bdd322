"""Financial Modeling Prep client: shares outstanding.

FMP answers with an array holding one object per symbol; an empty array
means the symbol is unknown.
"""

from decimal import Decimal

from tradr.exceptions import UpstreamDataError
from tradr.logging import get_logger
from tradr.upstream.fetcher import RateLimitedFetcher, RequestSpec
from tradr.upstream.keys import ApiKeyPool
from tradr.upstream.parsing import require_decimal

logger = get_logger(__name__)

ERROR_KEYS = ("Error Message",)
OUTSTANDING_SHARES_KEY = "outstandingShares"


class FmpClient:
    """Typed access to the FMP ``shares-float`` endpoint."""

    def __init__(self, fetcher: RateLimitedFetcher, pool: ApiKeyPool) -> None:
        self._fetcher = fetcher
        self._pool = pool

    async def fetch_shares_outstanding(self, ticker: str) -> Decimal:
        source = f"fmp:shares-float:{ticker}"
        payload = await self._fetcher.fetch(
            RequestSpec(
                source=source,
                path="/shares-float",
                params={"symbol": ticker},
                error_keys=ERROR_KEYS,
            ),
            self._pool,
        )
        if not isinstance(payload, list) or not payload:
            raise UpstreamDataError(
                f"{source} returned empty outstanding shares data", source=source
            )
        first = payload[0]
        if not isinstance(first, dict):
            raise UpstreamDataError(f"{source} returned an unexpected record", source=source)

        shares = require_decimal(first.get(OUTSTANDING_SHARES_KEY), OUTSTANDING_SHARES_KEY, source)
        if shares <= 0:
            raise UpstreamDataError(
                f"{source} reported non-positive outstanding shares", source=source
            )
        logger.debug("shares_outstanding_fetched", ticker=ticker, shares=str(shares))
        return shares
