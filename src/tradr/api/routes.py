"""HTTP endpoints: stock analysis and liveness.

Maps the AnalysisError hierarchy to status codes:

- ValidationError                            -> 400
- InsufficientHistoryError                   -> 422
- UpstreamError (incl. rate limits, parsing) -> 502
- PredictionServiceError                     -> 502
- anything else                              -> 500
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from tradr.exceptions import (
    AnalysisError,
    InsufficientHistoryError,
    PredictionServiceError,
    RateLimitExhausted,
    UpstreamError,
    ValidationError,
)
from tradr.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()
health_router = APIRouter()


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)},
    )


def _parse_optional_int(name: str, raw: str | None) -> int | None:
    if raw is None or raw.strip() == "":
        return None
    return _parse_int(name, raw)


def _parse_int(name: str, raw: str | None) -> int:
    if raw is None or raw.strip() == "":
        raise ValidationError(f"Query parameter '{name}' is required")
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer, got {raw!r}") from None


@health_router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/analyze")
async def analyze(
    request: Request,
    ticker: str = "",
    duration: str | None = None,
    unit: str = "",
    horizon: str | None = None,
) -> JSONResponse:
    """Analyze ``ticker`` over ``duration`` ``unit``s and score it."""
    orchestrator = request.app.state.orchestrator
    try:
        duration_value = _parse_int("duration", duration)
        horizon_value = _parse_optional_int("horizon", horizon)
        result = await orchestrator.analyze(ticker, duration_value, unit, horizon_value)
    except ValidationError as e:
        logger.info("analyze_rejected", ticker=ticker, reason=str(e))
        return _error(400, e)
    except InsufficientHistoryError as e:
        logger.info("analyze_insufficient_history", ticker=ticker, reason=str(e))
        return _error(422, e)
    except RateLimitExhausted as e:
        logger.warning("analyze_rate_limited", ticker=ticker, pool=e.pool, attempts=e.attempts)
        return _error(502, e)
    except (UpstreamError, PredictionServiceError) as e:
        logger.warning("analyze_upstream_failed", ticker=ticker, error_type=type(e).__name__, error=str(e))
        return _error(502, e)
    except AnalysisError as e:
        logger.error("analyze_failed", ticker=ticker, error=str(e), exc_info=True)
        return _error(500, e)
    except Exception:
        logger.error("analyze_unexpected_error", ticker=ticker, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "InternalError", "message": "Unexpected error during analysis"},
        )

    return JSONResponse(content=result.to_dict())
