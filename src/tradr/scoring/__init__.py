"""Signal scoring -- heuristic rules or the external prediction models, selected by configuration."""

from tradr.scoring.base import Scorer, categorize
from tradr.scoring.heuristic import HeuristicScorer
from tradr.scoring.remote import RandomForestScorer, RegressionScorer

__all__ = ["HeuristicScorer", "RandomForestScorer", "RegressionScorer", "Scorer", "categorize"]
