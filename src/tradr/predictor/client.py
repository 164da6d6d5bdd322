"""HTTP client for the externally hosted prediction models.

Two endpoints are consumed:

- ``POST /predict/<N>day`` with the flat feature vector, answering
  ``{"prediction": int, "probability": float}`` (classifier per horizon).
- ``GET /get_model_params`` answering the logistic regression's feature
  names, coefficients and the training means/stds used for z-scoring.

Every failure (network, HTTP status, malformed body) surfaces as
PredictionServiceError.
"""

from dataclasses import dataclass

import httpx

from tradr.analysis.features import FeatureVector
from tradr.config import PredictorSettings
from tradr.exceptions import PredictionServiceError, ValidationError
from tradr.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Prediction:
    """Classifier answer for one horizon."""

    prediction: int
    probability: float


@dataclass(frozen=True)
class ModelParams:
    """Logistic regression parameters, aligned by index."""

    feature_names: tuple[str, ...]
    coefficients: tuple[float, ...]
    means: tuple[float, ...]
    stds: tuple[float, ...]


def _float_list(payload: dict, key: str) -> tuple[float, ...]:
    values = payload.get(key)
    if not isinstance(values, list):
        raise PredictionServiceError(f"Model params field '{key}' is not a list")
    try:
        return tuple(float(v) for v in values)
    except (TypeError, ValueError) as e:
        raise PredictionServiceError(f"Model params field '{key}' holds non-numeric values") from e


class PredictorClient:
    """Async client for the prediction service.

    Args:
        client: httpx client bound to the predictor base URL.
        settings: Horizon-to-path map, params path and default horizon.
    """

    def __init__(self, client: httpx.AsyncClient, settings: PredictorSettings | None = None) -> None:
        self._client = client
        self._settings = settings or PredictorSettings()

    @property
    def supported_horizons(self) -> tuple[int, ...]:
        return tuple(sorted(self._settings.endpoints))

    @property
    def default_horizon(self) -> int:
        return self._settings.default_horizon_days

    def validate_horizon(self, horizon_days: int) -> None:
        """Raise ValidationError unless a model exists for ``horizon_days``."""
        if horizon_days not in self._settings.endpoints:
            raise ValidationError(
                f"Unsupported prediction horizon {horizon_days}; "
                f"expected one of {list(self.supported_horizons)}"
            )

    async def predict(self, features: FeatureVector, horizon_days: int | None = None) -> Prediction:
        """POST the feature vector to the classifier for ``horizon_days``."""
        horizon = horizon_days if horizon_days is not None else self.default_horizon
        self.validate_horizon(horizon)
        path = self._settings.endpoints[horizon]

        payload = await self._request("POST", path, json=features.to_payload())
        if not isinstance(payload, dict):
            raise PredictionServiceError(f"Prediction response from {path} is not an object")
        try:
            prediction = int(payload["prediction"])
            probability = float(payload["probability"])
        except (KeyError, TypeError, ValueError) as e:
            raise PredictionServiceError(f"Malformed prediction response from {path}") from e
        if not 0.0 <= probability <= 1.0:
            raise PredictionServiceError(f"Probability {probability} from {path} is outside [0, 1]")

        logger.info(
            "prediction_received",
            horizon_days=horizon,
            prediction=prediction,
            probability=probability,
        )
        return Prediction(prediction=prediction, probability=probability)

    async def fetch_model_params(self) -> ModelParams:
        """GET the regression parameters."""
        payload = await self._request("GET", self._settings.params_path)
        if not isinstance(payload, dict):
            raise PredictionServiceError("Model params response is not an object")

        names = payload.get("feature_names")
        if not isinstance(names, list):
            raise PredictionServiceError("Model params field 'feature_names' is not a list")
        params = ModelParams(
            feature_names=tuple(str(n) for n in names),
            coefficients=_float_list(payload, "coefficients"),
            means=_float_list(payload, "means"),
            stds=_float_list(payload, "stds"),
        )
        lengths = {len(params.coefficients), len(params.means), len(params.stds)}
        if lengths != {len(params.feature_names)}:
            raise PredictionServiceError("Model params arrays have mismatched lengths")
        return params

    async def _request(self, method: str, path: str, **kwargs) -> object:  # type: ignore[no-untyped-def]
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "predictor_request_failed",
                path=path,
                status_code=e.response.status_code,
            )
            raise PredictionServiceError(
                f"Predictor {path} answered HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("predictor_unreachable", path=path, error=type(e).__name__)
            raise PredictionServiceError(f"Predictor {path} unreachable: {type(e).__name__}") from e
        except ValueError as e:
            raise PredictionServiceError(f"Predictor {path} returned malformed JSON") from e
