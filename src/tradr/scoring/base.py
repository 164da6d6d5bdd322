"""Abstract scorer interface.

The heuristic scorer and the two remote model scorers implement this ABC,
so the orchestrator is identical whichever one configuration selects.
Their outputs are exclusive: one analysis is scored by exactly one scorer.
"""

from abc import ABC, abstractmethod

from tradr.config import ScoringSettings
from tradr.models import Fundamentals, IndicatorSet, ScoreResult


def categorize(score: int, settings: ScoringSettings) -> str:
    """Map a 0-100 score to its interpretation band (lower bounds inclusive)."""
    if score >= settings.strong_buy_min:
        return "Strong Buy"
    if score >= settings.buy_min:
        return "Buy"
    if score >= settings.neutral_min:
        return "Neutral"
    if score >= settings.sell_min:
        return "Sell"
    return "Strong Sell"


def clamp_score(score: int) -> int:
    return max(0, min(100, score))


class Scorer(ABC):
    """Abstract base class for signal scorers."""

    #: Name reported in ScoreResult.scorer.
    name: str = ""

    @abstractmethod
    async def score(
        self,
        indicators: IndicatorSet,
        fundamentals: Fundamentals,
        horizon_days: int | None = None,
    ) -> ScoreResult:
        """Score one analysis.

        Args:
            indicators: Indicators of the ticker's price series.
            fundamentals: Joined fundamentals for the ticker.
            horizon_days: Prediction horizon (remote scorers only).

        Returns:
            ScoreResult; ``score`` is None when this scorer's inputs are
            undefined for the ticker.

        Raises:
            PredictionServiceError: Remote model unreachable or malformed.
        """
        ...
