"""Custom exceptions for the stock analysis engine.

Every failure an analysis can surface lives here so the upstream clients,
the orchestrator and the HTTP layer share one hierarchy without circular
imports. The HTTP layer maps these to status codes.
"""


class AnalysisError(Exception):
    """Base exception for all analysis errors."""


class ValidationError(AnalysisError):
    """Raised when request parameters are invalid (caller error, never retried)."""


class UpstreamError(AnalysisError):
    """Raised when an upstream call fails at the HTTP or network level."""

    def __init__(self, message: str, source: str = "") -> None:
        super().__init__(message)
        self.source = source


class RateLimitExhausted(UpstreamError):
    """Raised when every key in a pool returned a rate-limit response."""

    def __init__(self, source: str, pool: str, attempts: int) -> None:
        super().__init__(
            f"All {attempts} API keys in pool '{pool}' exhausted for {source}",
            source=source,
        )
        self.pool = pool
        self.attempts = attempts


class UpstreamDataError(UpstreamError):
    """Raised when an upstream answers but the data is missing, empty, or an error."""


class ParseError(UpstreamDataError):
    """Raised when an upstream payload is malformed or holds non-numeric values."""


class InsufficientHistoryError(AnalysisError):
    """Raised when the price series is too short for any analysis (< 2 points)."""


class PredictionServiceError(AnalysisError):
    """Raised when the external predictor is unreachable or answers malformed data."""
