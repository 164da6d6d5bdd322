"""Tests for the HTTP endpoints, served in-process over httpx.ASGITransport."""

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from tradr.api.app import create_app
from tradr.exceptions import (
    InsufficientHistoryError,
    ParseError,
    PredictionServiceError,
    RateLimitExhausted,
    UpstreamError,
    ValidationError,
)
from tradr.models import (
    AnalysisResult,
    DurationUnit,
    HistoricalPrice,
    IndicatorSet,
    ScoreResult,
    SignificanceResult,
)


@pytest.fixture
def analysis_result(sample_fundamentals) -> AnalysisResult:
    return AnalysisResult(
        ticker="AAPL",
        duration=1,
        unit=DurationUnit.MONTH,
        latest_price=Decimal("190.5"),
        indicators=IndicatorSet(latest_close=Decimal("190.5"), rsi=Decimal("55"), rsi_signal="Strong Momentum"),
        significance=SignificanceResult(
            is_significant=True,
            message="Latest price ($190.50) vs. mean ($180.00) over 1 month(s): 5.83% change. Std Dev: 4.00.",
            data_points=21,
            mean=Decimal("180"),
            std_dev=Decimal("4"),
            percent_change=Decimal("5.83"),
            z_score=Decimal("2.63"),
            significant_by_percent=True,
            significant_by_z_score=True,
        ),
        score=ScoreResult(scorer="heuristic", score=62, category="Buy", raw_score=Decimal("55")),
        fundamentals=sample_fundamentals,
        historical_prices=[HistoricalPrice(date(2024, 5, 1), Decimal("190.5"))],
        message="Latest price ($190.50) vs. mean ($180.00) over 1 month(s): 5.83% change. Std Dev: 4.00.",
    )


@pytest.fixture
def orchestrator(analysis_result) -> MagicMock:
    orch = MagicMock()
    orch.analyze = AsyncMock(return_value=analysis_result)
    return orch


@pytest.fixture
def make_client(orchestrator):
    """Factory for an httpx client bound to a fresh app with the mocked orchestrator."""

    def _build() -> httpx.AsyncClient:
        app = create_app()
        app.state.orchestrator = orchestrator
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://tradr.test")

    return _build


class TestAnalyzeEndpoint:
    """Tests for GET /analyze."""

    @pytest.mark.asyncio
    async def test_success(self, make_client, orchestrator) -> None:
        async with make_client() as client:
            response = await client.get("/analyze", params={"ticker": "aapl", "duration": "1", "unit": "month"})

        assert response.status_code == 200
        body = response.json()
        assert body["receivedTicker"] == "AAPL"
        assert body["signalScore"] == 62
        assert body["scoreInterpretation"] == "Buy"
        assert body["percentageChangeFromMean"] == 5.83
        assert body["isStatisticallySignificant"] is True
        assert body["indicators"]["rsiSignal"] == "Strong Momentum"
        assert body["historicalPrices"] == [{"date": "2024-05-01", "close": 190.5}]
        orchestrator.analyze.assert_awaited_once_with("aapl", 1, "month", None)

    @pytest.mark.asyncio
    async def test_legacy_prefix_and_horizon(self, make_client, orchestrator) -> None:
        async with make_client() as client:
            response = await client.get(
                "/api/stock/analyze",
                params={"ticker": "MSFT", "duration": "6", "unit": "week", "horizon": "180"},
            )

        assert response.status_code == 200
        orchestrator.analyze.assert_awaited_once_with("MSFT", 6, "week", 180)

    @pytest.mark.asyncio
    async def test_blank_horizon_means_default(self, make_client, orchestrator) -> None:
        async with make_client() as client:
            response = await client.get(
                "/analyze", params={"ticker": "AAPL", "duration": "2", "unit": "day", "horizon": " "}
            )

        assert response.status_code == 200
        orchestrator.analyze.assert_awaited_once_with("AAPL", 2, "day", None)

    @pytest.mark.parametrize(
        "params",
        [
            {"ticker": "AAPL", "unit": "month"},
            {"ticker": "AAPL", "duration": "", "unit": "month"},
            {"ticker": "AAPL", "duration": "abc", "unit": "month"},
            {"ticker": "AAPL", "duration": "1", "unit": "month", "horizon": "soon"},
        ],
    )
    @pytest.mark.asyncio
    async def test_bad_integer_params(self, make_client, orchestrator, params) -> None:
        async with make_client() as client:
            response = await client.get("/analyze", params=params)

        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"
        orchestrator.analyze.assert_not_called()

    @pytest.mark.parametrize(
        ("exc", "status", "error"),
        [
            (ValidationError("Invalid unit 'decade'"), 400, "ValidationError"),
            (InsufficientHistoryError("Only 1 price point"), 422, "InsufficientHistoryError"),
            (RateLimitExhausted("alphavantage:daily:AAPL", "alphavantage-primary", 3), 502, "RateLimitExhausted"),
            (UpstreamError("connection reset", source="finnhub"), 502, "UpstreamError"),
            (ParseError("bad close value", source="alphavantage"), 502, "ParseError"),
            (PredictionServiceError("model down"), 502, "PredictionServiceError"),
        ],
    )
    @pytest.mark.asyncio
    async def test_error_mapping(self, make_client, orchestrator, exc, status, error) -> None:
        orchestrator.analyze.side_effect = exc

        async with make_client() as client:
            response = await client.get("/analyze", params={"ticker": "AAPL", "duration": "1", "unit": "month"})

        assert response.status_code == status
        assert response.json() == {"error": error, "message": str(exc)}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_opaque(self, make_client, orchestrator) -> None:
        orchestrator.analyze.side_effect = RuntimeError("secret internals")

        async with make_client() as client:
            response = await client.get("/analyze", params={"ticker": "AAPL", "duration": "1", "unit": "month"})

        assert response.status_code == 500
        assert response.json()["error"] == "InternalError"
        assert "secret" not in response.text


class TestHealth:
    """Tests for GET /health."""

    @pytest.mark.asyncio
    async def test_health(self, make_client) -> None:
        async with make_client() as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
