"""Tests for PredictorClient against a mocked prediction service."""

import json
from decimal import Decimal

import httpx
import pytest

from tradr.analysis.features import FEATURE_KEYS, FeatureVector
from tradr.config import PredictorSettings
from tradr.exceptions import PredictionServiceError, ValidationError
from tradr.predictor.client import PredictorClient


@pytest.fixture
def features() -> FeatureVector:
    return FeatureVector(**{key: Decimal("0.5") for key in FEATURE_KEYS})


class TestPredict:
    """Tests for the classifier endpoint."""

    @pytest.mark.asyncio
    async def test_posts_feature_payload_to_horizon_path(self, mock_http, features) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"prediction": 1, "probability": 0.81})

        result = await PredictorClient(mock_http(handler)).predict(features, 365)

        assert result.prediction == 1
        assert result.probability == 0.81
        assert captured[0].method == "POST"
        assert captured[0].url.path == "/predict/365day"
        assert json.loads(captured[0].content) == {key: 0.5 for key in FEATURE_KEYS}

    @pytest.mark.asyncio
    async def test_default_horizon(self, mock_http, features) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"prediction": 0, "probability": 0.2})

        await PredictorClient(mock_http(handler), PredictorSettings(default_horizon_days=7)).predict(features)
        assert captured[0].url.path == "/predict/7day"

    @pytest.mark.asyncio
    async def test_unsupported_horizon(self, mock_http, features) -> None:
        client = PredictorClient(mock_http(lambda r: httpx.Response(200, json={})))
        with pytest.raises(ValidationError, match="Unsupported prediction horizon"):
            await client.predict(features, 45)

    @pytest.mark.asyncio
    async def test_http_error(self, mock_http, features) -> None:
        client = PredictorClient(mock_http(lambda r: httpx.Response(500, text="model crashed")))
        with pytest.raises(PredictionServiceError, match="HTTP 500"):
            await client.predict(features, 30)

    @pytest.mark.asyncio
    async def test_unreachable(self, mock_http, features) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PredictionServiceError, match="unreachable"):
            await PredictorClient(mock_http(handler)).predict(features, 30)

    @pytest.mark.asyncio
    async def test_malformed_response(self, mock_http, features) -> None:
        client = PredictorClient(mock_http(lambda r: httpx.Response(200, json={"probability": 0.5})))
        with pytest.raises(PredictionServiceError, match="Malformed"):
            await client.predict(features, 30)

    @pytest.mark.asyncio
    async def test_probability_out_of_range(self, mock_http, features) -> None:
        client = PredictorClient(mock_http(lambda r: httpx.Response(200, json={"prediction": 1, "probability": 1.7})))
        with pytest.raises(PredictionServiceError, match="outside"):
            await client.predict(features, 30)


class TestModelParams:
    """Tests for the regression parameters endpoint."""

    @pytest.mark.asyncio
    async def test_parses_params(self, mock_http) -> None:
        body = {
            "feature_names": ["rsi_centered", "volatility"],
            "coefficients": [0.3, -1.2],
            "means": [1.0, 0.02],
            "stds": [10.0, 0.01],
        }
        params = await PredictorClient(mock_http(lambda r: httpx.Response(200, json=body))).fetch_model_params()

        assert params.feature_names == ("rsi_centered", "volatility")
        assert params.coefficients == (0.3, -1.2)
        assert params.stds == (10.0, 0.01)

    @pytest.mark.asyncio
    async def test_mismatched_lengths(self, mock_http) -> None:
        body = {"feature_names": ["a", "b"], "coefficients": [1.0], "means": [0.0, 0.0], "stds": [1.0, 1.0]}
        client = PredictorClient(mock_http(lambda r: httpx.Response(200, json=body)))
        with pytest.raises(PredictionServiceError, match="mismatched"):
            await client.fetch_model_params()

    @pytest.mark.asyncio
    async def test_non_numeric_coefficients(self, mock_http) -> None:
        body = {"feature_names": ["a"], "coefficients": ["x"], "means": [0.0], "stds": [1.0]}
        client = PredictorClient(mock_http(lambda r: httpx.Response(200, json=body)))
        with pytest.raises(PredictionServiceError, match="non-numeric"):
            await client.fetch_model_params()


class TestHorizons:
    """Tests for horizon validation."""

    def test_supported_horizons(self, mock_http) -> None:
        client = PredictorClient(mock_http(lambda r: httpx.Response(200)))
        assert client.supported_horizons == (7, 30, 60, 180, 365, 730, 1460)
        client.validate_horizon(1460)
        with pytest.raises(ValidationError):
            client.validate_horizon(90)
