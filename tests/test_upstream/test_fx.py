"""Tests for CurrencyConverter."""

from decimal import Decimal

import httpx
import pytest

from tradr.exceptions import UpstreamDataError, UpstreamError
from tradr.upstream.fx import CurrencyConverter


class TestGetRate:
    """Tests for get_rate."""

    @pytest.mark.asyncio
    async def test_same_currency_needs_no_request(self, mock_http) -> None:
        """USD -> USD is 1 without calling the service."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert await CurrencyConverter(mock_http(handler)).get_rate("usd") == Decimal("1")

    @pytest.mark.asyncio
    async def test_reads_info_rate(self, mock_http) -> None:
        """The rate comes from info.rate of the convert endpoint."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"success": True, "info": {"rate": 1.0845}, "result": 1.0845})

        assert await CurrencyConverter(mock_http(handler)).get_rate("EUR") == Decimal("1.0845")
        assert captured[0].url.path == "/convert"
        assert captured[0].url.params["from"] == "EUR"
        assert captured[0].url.params["to"] == "USD"

    @pytest.mark.asyncio
    async def test_missing_rate(self, mock_http) -> None:
        """A response without info.rate is a data error."""
        converter = CurrencyConverter(mock_http(lambda r: httpx.Response(200, json={"success": False})))
        with pytest.raises(UpstreamDataError, match="info.rate"):
            await converter.get_rate("EUR")

    @pytest.mark.asyncio
    async def test_http_failure(self, mock_http) -> None:
        """HTTP errors surface as UpstreamError."""
        converter = CurrencyConverter(mock_http(lambda r: httpx.Response(503)))
        with pytest.raises(UpstreamError):
            await converter.get_rate("JPY")
