"""Shared test fixtures for the stock analysis engine."""

from collections.abc import Callable
from datetime import date, timedelta
from decimal import Decimal

import httpx
import pytest

from tradr.config import (
    AlphaVantageSettings,
    AnalysisSettings,
    AppSettings,
    FinnhubSettings,
    FmpSettings,
)
from tradr.models import Fundamentals, PriceBar, PriceSeries


@pytest.fixture
def mock_settings() -> AppSettings:
    """Return AppSettings with test defaults (dummy keys, heuristic scorer)."""
    return AppSettings(
        log_level="DEBUG",
        alphavantage=AlphaVantageSettings(
            primary_keys=["av-1", "av-2", "av-3"],  # type: ignore[list-item]
            secondary_keys=["av-s1"],  # type: ignore[list-item]
        ),
        finnhub=FinnhubSettings(api_keys=["fh-1"]),  # type: ignore[list-item]
        fmp=FmpSettings(api_keys=["fmp-1"]),  # type: ignore[list-item]
        analysis=AnalysisSettings(scorer_kind="heuristic"),
    )


@pytest.fixture
def daily_payload() -> Callable[..., dict]:
    """Factory for an Alpha Vantage TIME_SERIES_DAILY payload.

    Closes are given oldest first on consecutive calendar days starting at
    ``start``; the payload lists them newest first like the real API.
    """

    def _build(
        closes: list,
        start: date = date(2024, 1, 1),
        volumes: list | None = None,
    ) -> dict:
        vols = volumes if volumes is not None else [1_000_000] * len(closes)
        series = {}
        for i in reversed(range(len(closes))):
            day = start + timedelta(days=i)
            series[day.isoformat()] = {
                "1. open": str(closes[i]),
                "4. close": str(closes[i]),
                "5. volume": str(vols[i]),
            }
        return {
            "Meta Data": {"2. Symbol": "TEST"},
            "Time Series (Daily)": series,
        }

    return _build


@pytest.fixture
def make_series() -> Callable[..., PriceSeries]:
    """Factory for a PriceSeries from oldest-first closes on consecutive days."""

    def _build(
        closes: list,
        start: date = date(2024, 1, 1),
        volumes: list | None = None,
        ticker: str = "TEST",
    ) -> PriceSeries:
        vols = volumes if volumes is not None else [1_000_000] * len(closes)
        bars = tuple(
            PriceBar(
                date=start + timedelta(days=i),
                close=Decimal(str(c)),
                volume=Decimal(str(v)),
            )
            for i, (c, v) in enumerate(zip(closes, vols))
        )
        return PriceSeries(ticker=ticker, bars=bars)

    return _build


@pytest.fixture
def sample_fundamentals() -> Fundamentals:
    """Fundamentals with every field defined and plausible values."""
    return Fundamentals(
        market_cap=Decimal("2500000000000"),
        ttm_eps=Decimal("6.5"),
        shares_outstanding=Decimal("15000000000"),
        latest_net_income=Decimal("97000000000"),
        sp500_pe_proxy=Decimal("1.05"),
        latest_volume=Decimal("55000000"),
        volumes_20d=tuple(Decimal("50000000") for _ in range(20)),
    )


@pytest.fixture
def mock_http() -> Callable[..., httpx.AsyncClient]:
    """Factory for an httpx.AsyncClient served by a request handler.

    Usage:
        client = mock_http(lambda request: httpx.Response(200, json={...}))
    """

    def _build(
        handler: Callable[[httpx.Request], httpx.Response],
        base_url: str = "https://upstream.test",
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=base_url, transport=httpx.MockTransport(handler))

    return _build
