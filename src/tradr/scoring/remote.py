"""Scorers backed by the external prediction service.

Both build the FeatureVector first. When any feature is undefined the
result carries no score and a message naming the missing features; the
service is not called.
"""

import math

from tradr.analysis.features import FeatureVector, build_feature_vector
from tradr.config import ScoringSettings
from tradr.logging import get_logger
from tradr.models import Fundamentals, IndicatorSet, ScoreResult
from tradr.predictor.client import ModelParams, PredictorClient
from tradr.scoring.base import Scorer, categorize, clamp_score

logger = get_logger(__name__)


def probability_to_score(probability: float) -> int:
    """Scale a probability to 0-100, truncating like the model's own reports."""
    return clamp_score(int(probability * 100))


def _unavailable(scorer: str, missing: list[str]) -> ScoreResult:
    logger.warning("feature_vector_unavailable", scorer=scorer, missing=missing)
    return ScoreResult(
        scorer=scorer,
        score=None,
        category=None,
        message=f"Score unavailable: undefined model features ({', '.join(missing)}).",
    )


class RandomForestScorer(Scorer):
    """Posts the feature vector to the per-horizon classifier.

    Args:
        predictor: Prediction service client.
        settings: Category bands.
    """

    name = "random_forest"

    def __init__(self, predictor: PredictorClient, settings: ScoringSettings | None = None) -> None:
        self._predictor = predictor
        self._settings = settings or ScoringSettings()

    async def score(
        self,
        indicators: IndicatorSet,
        fundamentals: Fundamentals,
        horizon_days: int | None = None,
    ) -> ScoreResult:
        features, missing = build_feature_vector(indicators, fundamentals)
        if features is None:
            return _unavailable(self.name, missing)

        result = await self._predictor.predict(features, horizon_days)
        score = probability_to_score(result.probability)
        return ScoreResult(
            scorer=self.name,
            score=score,
            category=categorize(score, self._settings),
            probability=result.probability,
            prediction=result.prediction,
        )


def regression_log_odds(features: FeatureVector, params: ModelParams) -> float:
    """Linear combination of z-scored features and coefficients.

    Features without parameters are ignored. A zero training std uses the
    raw value unnormalized.
    """
    values = features.to_payload()
    raw = 0.0
    for name, coefficient, mean, std in zip(
        params.feature_names, params.coefficients, params.means, params.stds
    ):
        if name not in values:
            continue
        value = values[name]
        normalized = (value - mean) / std if std != 0 else value
        raw += normalized * coefficient
    return raw


def sigmoid(x: float) -> float:
    # Split by sign so exp() never overflows.
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


class RegressionScorer(Scorer):
    """Scores locally with logistic regression parameters fetched from the service.

    Args:
        predictor: Prediction service client (parameters endpoint).
        settings: Category bands.
    """

    name = "regression"

    def __init__(self, predictor: PredictorClient, settings: ScoringSettings | None = None) -> None:
        self._predictor = predictor
        self._settings = settings or ScoringSettings()

    async def score(
        self,
        indicators: IndicatorSet,
        fundamentals: Fundamentals,
        horizon_days: int | None = None,
    ) -> ScoreResult:
        features, missing = build_feature_vector(indicators, fundamentals)
        if features is None:
            return _unavailable(self.name, missing)

        params = await self._predictor.fetch_model_params()
        unknown = [name for name in params.feature_names if name not in features.to_payload()]
        if unknown:
            logger.warning("regression_params_unknown_features", features=unknown)

        raw = regression_log_odds(features, params)
        probability = sigmoid(raw)
        score = probability_to_score(probability)

        logger.info("regression_score_computed", log_odds=raw, probability=probability, score=score)
        return ScoreResult(
            scorer=self.name,
            score=score,
            category=categorize(score, self._settings),
            probability=probability,
        )
