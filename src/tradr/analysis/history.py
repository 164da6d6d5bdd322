"""Normalization of a raw daily time-series payload into a PriceSeries.

Alpha Vantage returns ``{"Time Series (Daily)": {"YYYY-MM-DD": {...}}}``
newest first. Every downstream calculation needs oldest first, so the
series is re-sorted here once and then frozen.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from tradr.exceptions import InsufficientHistoryError, ParseError
from tradr.logging import get_logger
from tradr.models import PriceBar, PriceSeries

logger = get_logger(__name__)

TIME_SERIES_KEY = "Time Series (Daily)"
CLOSE_KEY = "4. close"
VOLUME_KEY = "5. volume"

#: Fewer points than this cannot support any analysis.
MIN_POINTS = 2


class PriceHistoryStore:
    """Builds immutable PriceSeries objects from upstream payloads.

    Args:
        volume_window: Number of trailing volumes kept for relative-volume features.
    """

    def __init__(self, volume_window: int = 20) -> None:
        self._volume_window = volume_window

    def normalize(self, raw_payload: Any, ticker: str = "") -> PriceSeries:
        """Parse, sort ascending, dedupe and validate a daily series payload.

        On conflicting dates the first occurrence in upstream order wins.

        Raises:
            ParseError: Missing series object, unparseable date, or missing or
                non-numeric close/volume.
            InsufficientHistoryError: Fewer than 2 distinct dates.
        """
        if not isinstance(raw_payload, dict):
            raise ParseError(f"Daily series payload for {ticker} is not an object")
        series = raw_payload.get(TIME_SERIES_KEY)
        if not isinstance(series, dict):
            raise ParseError(f"Could not find '{TIME_SERIES_KEY}' in payload for {ticker}")

        by_date: dict[date, PriceBar] = {}
        duplicates = 0
        for raw_date, record in series.items():
            bar = _parse_bar(raw_date, record, ticker)
            if bar.date in by_date:
                duplicates += 1
                continue
            by_date[bar.date] = bar

        if duplicates:
            logger.debug("duplicate_dates_dropped", ticker=ticker, count=duplicates)

        if len(by_date) < MIN_POINTS:
            raise InsufficientHistoryError(
                f"Daily series for {ticker} has {len(by_date)} point(s); "
                f"at least {MIN_POINTS} are required"
            )

        bars = tuple(by_date[d] for d in sorted(by_date))
        return PriceSeries(ticker=ticker, bars=bars, volume_window=self._volume_window)


def _parse_bar(raw_date: str, record: Any, ticker: str) -> PriceBar:
    try:
        day = date.fromisoformat(str(raw_date).strip()[:10])
    except ValueError as e:
        raise ParseError(f"Invalid date '{raw_date}' in series for {ticker}") from e

    if not isinstance(record, dict):
        raise ParseError(f"Record for {raw_date} in series for {ticker} is not an object")

    return PriceBar(
        date=day,
        close=_parse_decimal(record, CLOSE_KEY, raw_date, ticker),
        volume=_parse_decimal(record, VOLUME_KEY, raw_date, ticker),
    )


def _parse_decimal(record: dict, key: str, raw_date: str, ticker: str) -> Decimal:
    raw = record.get(key)
    if raw is None:
        raise ParseError(f"Missing '{key}' for {raw_date} in series for {ticker}")
    try:
        value = Decimal(str(raw))
    except InvalidOperation as e:
        raise ParseError(
            f"Non-numeric '{key}' value {raw!r} for {raw_date} in series for {ticker}"
        ) from e
    if not value.is_finite():
        raise ParseError(f"Non-finite '{key}' value for {raw_date} in series for {ticker}")
    return value
