"""Currency conversion for market caps reported in a non-USD currency."""

from decimal import Decimal

import httpx

from tradr.exceptions import ParseError, UpstreamDataError, UpstreamError
from tradr.logging import get_logger
from tradr.upstream.parsing import require_decimal

logger = get_logger(__name__)


class CurrencyConverter:
    """Looks up spot conversion rates from the exchangerate.host ``convert`` endpoint.

    Args:
        client: httpx client bound to the FX service base URL.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def get_rate(self, source_currency: str, target_currency: str = "USD") -> Decimal:
        """Return how many ``target_currency`` units one ``source_currency`` buys."""
        src = source_currency.upper()
        dst = target_currency.upper()
        if src == dst:
            return Decimal("1")

        source = f"fx:{src}->{dst}"
        try:
            response = await self._client.get("/convert", params={"from": src, "to": dst})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise UpstreamError(f"{source} request failed: {type(e).__name__}", source=source) from e
        except ValueError as e:
            raise ParseError(f"{source} returned malformed JSON", source=source) from e

        info = payload.get("info") if isinstance(payload, dict) else None
        if not isinstance(info, dict) or info.get("rate") is None:
            raise UpstreamDataError(f"{source} response is missing info.rate", source=source)

        rate = require_decimal(info["rate"], "info.rate", source)
        logger.debug("fx_rate_fetched", source_currency=src, target_currency=dst, rate=str(rate))
        return rate
