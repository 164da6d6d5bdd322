"""Single HTTP call against a quota-limited upstream with key rotation.

Rate limits on these providers are signalled in the JSON body (sentinel
top-level keys such as Alpha Vantage's "Note"/"Information"), not by HTTP
status. Only those payloads rotate to the next key; everything else fails
at once so real errors are never reported as quota problems:

- HTTP status error or network failure -> UpstreamError
- body that is not JSON                -> ParseError
- error sentinel in the body           -> UpstreamDataError
- rate-limit sentinel on the last key  -> RateLimitExhausted
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx

from tradr.exceptions import (
    ParseError,
    RateLimitExhausted,
    UpstreamDataError,
    UpstreamError,
)
from tradr.logging import get_logger
from tradr.upstream.keys import ApiKeyPool
from tradr.upstream.retry import RetryPolicy

logger = get_logger(__name__)


@dataclass(frozen=True)
class RequestSpec:
    """Template for one upstream request.

    Args:
        source: Label for logs and errors (e.g. "alphavantage:daily:AAPL").
        path: Path relative to the client's base URL.
        params: Query parameters, without the credential.
        key_param: Query parameter carrying the API key.
        rate_limit_keys: Top-level payload keys that signal a quota hit.
        error_keys: Top-level payload keys that signal a hard upstream error.
    """

    source: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    key_param: str = "apikey"
    rate_limit_keys: tuple[str, ...] = ()
    error_keys: tuple[str, ...] = ()


class RateLimitedFetcher:
    """Executes RequestSpecs against one upstream, rotating keys on rate limits.

    Args:
        client: httpx client configured with the upstream's base URL and timeout.
        retry_policy: Attempt budget and inter-attempt delay. Default is one
            attempt per key with no delay.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self._client = client
        self._retry_policy = retry_policy or RetryPolicy()

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def fetch(self, request: RequestSpec, pool: ApiKeyPool) -> Any:
        """Perform the request and return the decoded JSON payload.

        Raises:
            RateLimitExhausted: Every allowed attempt hit a rate-limit sentinel.
            UpstreamDataError: The body carried an error sentinel or was empty.
            ParseError: The body was not valid JSON.
            UpstreamError: HTTP status or transport failure.
        """
        max_attempts = self._retry_policy.attempts_for(pool.size)
        key_index, key = pool.current()

        for attempt in range(max_attempts):
            delay = self._retry_policy.delay_before(attempt)
            if delay > 0:
                await asyncio.sleep(delay)

            payload = await self._request_once(request, key)

            rate_limit_note = _find_sentinel(payload, request.rate_limit_keys)
            if rate_limit_note is None:
                error_message = _find_sentinel(payload, request.error_keys)
                if error_message is not None:
                    logger.warning(
                        "upstream_error_payload",
                        source=request.source,
                        error=error_message,
                    )
                    raise UpstreamDataError(
                        f"{request.source} returned an error: {error_message}",
                        source=request.source,
                    )
                if attempt > 0:
                    logger.info(
                        "rate_limit_recovered",
                        source=request.source,
                        pool=pool.name,
                        attempts=attempt + 1,
                    )
                return payload

            if attempt == max_attempts - 1:
                logger.error(
                    "rate_limit_exhausted",
                    source=request.source,
                    pool=pool.name,
                    attempts=max_attempts,
                )
                raise RateLimitExhausted(request.source, pool.name, max_attempts)

            logger.warning(
                "rate_limited_rotating_key",
                source=request.source,
                pool=pool.name,
                key_index=key_index,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                note=rate_limit_note,
            )
            key_index, key = pool.rotate_from(key_index)

        # Unreachable: the loop either returns or raises on its last attempt
        raise RateLimitExhausted(request.source, pool.name, max_attempts)

    async def _request_once(self, request: RequestSpec, key: str) -> Any:
        params = {**request.params, request.key_param: key}
        try:
            response = await self._client.get(request.path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "upstream_request_failed",
                source=request.source,
                status_code=e.response.status_code,
            )
            raise UpstreamError(
                f"{request.source} returned HTTP {e.response.status_code}",
                source=request.source,
            ) from e
        except httpx.HTTPError as e:
            logger.warning(
                "upstream_request_failed",
                source=request.source,
                error=type(e).__name__,
            )
            raise UpstreamError(
                f"{request.source} request failed: {type(e).__name__}",
                source=request.source,
            ) from e

        if not response.content.strip():
            raise UpstreamDataError(
                f"{request.source} returned an empty body", source=request.source
            )
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(
                f"{request.source} returned malformed JSON", source=request.source
            ) from e


def _find_sentinel(payload: Any, keys: tuple[str, ...]) -> str | None:
    """Return the message under the first sentinel key present, if any."""
    if not isinstance(payload, dict):
        return None
    for k in keys:
        if k in payload:
            return str(payload[k])
    return None
