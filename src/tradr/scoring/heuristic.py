"""Rule-based signal scorer.

Each rule contributes independently; the raw total is mapped linearly from
[raw_min, raw_min + raw_span] onto 0-100, rounded half up and clamped.
Weights and thresholds come from ScoringSettings.

CRITICAL: All computations use Decimal. Never use float for signal scores.
"""

from decimal import ROUND_HALF_UP, Decimal

from tradr.config import ScoringSettings
from tradr.logging import get_logger
from tradr.models import Fundamentals, IndicatorSet, ScoreResult
from tradr.scoring.base import Scorer, categorize, clamp_score

logger = get_logger(__name__)

_ZERO = Decimal("0")


class HeuristicScorer(Scorer):
    """Additive indicator rules normalized to a 0-100 score.

    Args:
        settings: Rule weights, thresholds and the normalization range.
    """

    name = "heuristic"

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        self._settings = settings or ScoringSettings()

    async def score(
        self,
        indicators: IndicatorSet,
        fundamentals: Fundamentals,
        horizon_days: int | None = None,
    ) -> ScoreResult:
        return self.evaluate(indicators, fundamentals)

    def evaluate(self, indicators: IndicatorSet, fundamentals: Fundamentals) -> ScoreResult:
        """Synchronous scoring; absent indicators contribute nothing."""
        contributions = self.contributions(indicators, fundamentals)
        raw = sum(contributions.values(), _ZERO)
        score = self.normalize(raw)
        category = categorize(score, self._settings)

        logger.info(
            "heuristic_score_computed",
            raw_score=str(raw),
            score=score,
            category=category,
            contributions={k: str(v) for k, v in contributions.items() if v != _ZERO},
        )
        return ScoreResult(
            scorer=self.name,
            score=score,
            category=category,
            raw_score=raw,
            contributions=contributions,
        )

    def normalize(self, raw: Decimal) -> int:
        s = self._settings
        scaled = (raw - s.raw_min) / s.raw_span * Decimal("100")
        return clamp_score(int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

    def contributions(
        self, indicators: IndicatorSet, fundamentals: Fundamentals
    ) -> dict[str, Decimal]:
        s = self._settings
        price = indicators.latest_close
        return {
            "rsi": self._rsi_points(indicators.rsi),
            "macd": self._macd_points(indicators.macd_line, indicators.macd_signal),
            "bollinger": self._bollinger_points(price, indicators.bb_upper, indicators.bb_lower),
            "sma": (
                s.above_sma_points
                if indicators.sma50 is not None and price > indicators.sma50
                else _ZERO
            ),
            "volume": (
                s.volume_points if fundamentals.latest_volume > s.volume_threshold else _ZERO
            ),
            "atr": self._atr_points(indicators.atr),
            "volatility": (
                s.volatility_points
                if indicators.volatility is not None
                and indicators.volatility > s.volatility_threshold
                else _ZERO
            ),
            "sentiment": self._sentiment_points(fundamentals.sentiment),
        }

    # ──────────────────────────────────────────────────────────────
    # Individual rules
    # ──────────────────────────────────────────────────────────────

    def _rsi_points(self, rsi: Decimal | None) -> Decimal:
        s = self._settings
        if rsi is None:
            return _ZERO
        if s.rsi_momentum_floor < rsi < s.rsi_momentum_ceiling:
            points = (rsi - s.rsi_momentum_floor) * s.rsi_momentum_multiplier
            return min(points, s.rsi_momentum_cap)
        if rsi <= s.rsi_oversold_threshold:
            return s.rsi_oversold_points
        return _ZERO

    def _macd_points(self, line: Decimal | None, signal: Decimal | None) -> Decimal:
        s = self._settings
        if line is None or signal is None or line <= signal:
            return _ZERO
        return min(s.macd_cap, (line - signal) * s.macd_multiplier)

    def _bollinger_points(
        self, price: Decimal, upper: Decimal | None, lower: Decimal | None
    ) -> Decimal:
        s = self._settings
        if upper is None or lower is None:
            return _ZERO
        if price > upper:
            return s.bollinger_upper_penalty
        if price < lower:
            return s.bollinger_lower_reward
        return _ZERO

    def _atr_points(self, atr: Decimal | None) -> Decimal:
        s = self._settings
        if atr is None:
            return _ZERO
        if atr > s.atr_high_threshold:
            return s.atr_high_points
        if atr > s.atr_moderate_threshold:
            return s.atr_moderate_points
        return _ZERO

    def _sentiment_points(self, sentiment: Decimal | None) -> Decimal:
        s = self._settings
        if sentiment is None:
            return _ZERO
        if sentiment >= s.sentiment_strong_threshold:
            return s.sentiment_strong_points
        if sentiment >= s.sentiment_mild_threshold:
            return s.sentiment_mild_points
        if sentiment <= -s.sentiment_strong_threshold:
            return -s.sentiment_strong_points
        if sentiment <= -s.sentiment_mild_threshold:
            return -s.sentiment_mild_points
        return _ZERO
