"""Price-series analysis.

Provides normalization of raw daily series, technical indicators with
their signal labels, the window-mean significance test, and the model
feature vector built from indicators and fundamentals.
"""

from tradr.analysis.features import (
    FEATURE_KEYS,
    FEATURE_SET_VERSION,
    FeatureVector,
    build_feature_vector,
)
from tradr.analysis.history import PriceHistoryStore
from tradr.analysis.indicators import IndicatorEngine
from tradr.analysis.significance import SignificanceTester, window_start

__all__ = [
    "FEATURE_KEYS",
    "FEATURE_SET_VERSION",
    "FeatureVector",
    "IndicatorEngine",
    "PriceHistoryStore",
    "SignificanceTester",
    "build_feature_vector",
    "window_start",
]
