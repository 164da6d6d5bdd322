"""Upstream data layer -- key-rotating fetches from quota-limited market data APIs."""

from tradr.upstream.alphavantage import AlphaVantageClient
from tradr.upstream.fetcher import RateLimitedFetcher, RequestSpec
from tradr.upstream.finnhub import FinnhubClient
from tradr.upstream.fmp import FmpClient
from tradr.upstream.fx import CurrencyConverter
from tradr.upstream.keys import ApiKeyPool
from tradr.upstream.retry import RetryPolicy

__all__ = [
    "AlphaVantageClient",
    "ApiKeyPool",
    "CurrencyConverter",
    "FinnhubClient",
    "FmpClient",
    "RateLimitedFetcher",
    "RequestSpec",
    "RetryPolicy",
]
