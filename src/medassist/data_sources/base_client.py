"""
Base client for external literature APIs.

Provides: outbound rate limiting, per-attempt deadlines, retry with the shared
backoff policy, structured request logging, and session lifecycle.
"""

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import aiohttp
from pydantic import BaseModel, Field

from medassist.constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    RETRYABLE_STATUS_CODES,
)
from medassist.errors import LiteratureApiError
from medassist.utils.token_bucket import TokenBucket

logger = logging.getLogger("medassist.data_sources")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RetryConfig(BaseModel):
    """Retry behaviour shared by provider calls and literature API calls.

    ``max_attempts`` counts every attempt including the first. The wait
    before attempt ``n + 1`` is ``delay_seconds * n``, capped at ``max_delay``.
    """

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    delay_seconds: float = DEFAULT_RETRY_DELAY
    max_delay: float = 30.0
    timeout_seconds: float = DEFAULT_TIMEOUT
    retryable_status_codes: frozenset[int] = RETRYABLE_STATUS_CODES

    def backoff(self, attempt: int) -> float:
        return min(self.delay_seconds * attempt, self.max_delay)


class RateLimitConfig(BaseModel):
    """Outbound token-bucket settings."""

    requests_per_second: float = 3.0
    burst: int = 3


class ClientConfig(BaseModel):
    """Top-level config aggregating retry and rate limit."""

    retry: RetryConfig = RetryConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()


# ---------------------------------------------------------------------------
# Rate limiter (async token bucket)
# ---------------------------------------------------------------------------


class AsyncRateLimiter:
    """
    Async wrapper around TokenBucket.

    Allows `burst` requests immediately, then refills at
    `requests_per_second`.  Callers await `acquire()` before
    making a request; it sleeps only when the bucket is empty.
    """

    def __init__(self, config: RateLimitConfig):
        self.bucket = TokenBucket(config.burst, config.requests_per_second)
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            wait = self.bucket.seconds_until_token()
            if wait > 0:
                logger.debug("Rate limiter: sleeping %.2fs", wait)
                await asyncio.sleep(wait)
            self.bucket.try_take()


# ---------------------------------------------------------------------------
# Request context (for structured logging)
# ---------------------------------------------------------------------------


class RequestContext(BaseModel):
    """Metadata attached to every outgoing request for logging."""

    source: str  # e.g. "pubmed"
    method: str  # e.g. "search"
    params: dict[str, Any] = {}


class _RetryableStatusError(LiteratureApiError):
    def __init__(self, source: str, message: str, status_code: int, retry_after: float | None):
        super().__init__(source, message, status_code=status_code)
        self.retry_after = retry_after


def parse_retry_after(value: str | None) -> float | None:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date).

    Returns None when the header is missing or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(float(value), 0.0)
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparseable Retry-After %r", value)
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class BaseClient(ABC):
    """
    Abstract base for literature API clients.

    Subclasses implement `_source_name` and their own typed methods that
    call `_rest_get()` (JSON) or `_rest_get_xml()` (raw text).
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self.rate_limiter = AsyncRateLimiter(self.config.rate_limit)
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def _source_name(self) -> str:
        """Identifier for this data source, e.g. 'pubmed'."""
        ...

    # -- Session management --------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.retry.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Core request with retry + rate limiting -----------------------------

    async def _send(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
        ctx: RequestContext,
    ) -> str:
        session = await self._get_session()
        resp = await session.get(url, params=params, headers=headers)

        if resp.status in self.config.retry.retryable_status_codes:
            body = await resp.text()
            retry_after = None
            if resp.status == 429:
                retry_after = parse_retry_after(resp.headers.get("Retry-After"))
            raise _RetryableStatusError(
                ctx.source,
                f"HTTP {resp.status}: {body[:200]}",
                status_code=resp.status,
                retry_after=retry_after,
            )

        if resp.status >= 400:
            body = await resp.text()
            raise LiteratureApiError(
                ctx.source,
                f"HTTP {resp.status}: {body[:500]}",
                status_code=resp.status,
            )

        return await resp.text()

    async def _request(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        context: RequestContext | None = None,
    ) -> str:
        """
        GET ``url`` with rate limiting, deadlines and retry.

        Timeouts, connection errors and retryable status codes are retried up
        to ``retry.max_attempts`` times. Any other 4xx fails immediately.

        Raises
        ------
        LiteratureApiError
            On a non-retryable status, or once every attempt has failed.
        """
        ctx = context or RequestContext(source=self._source_name, method="unknown")
        retry = self.config.retry

        last_error: LiteratureApiError | None = None
        start = time.monotonic()

        for attempt in range(1, retry.max_attempts + 1):
            wait = retry.backoff(attempt)
            try:
                await self.rate_limiter.acquire()

                logger.info(
                    "Request [%s.%s] attempt=%d url=%s",
                    ctx.source,
                    ctx.method,
                    attempt,
                    url,
                )

                body = await asyncio.wait_for(
                    self._send(url, params, headers, ctx),
                    timeout=retry.timeout_seconds,
                )

                logger.info(
                    "Success [%s.%s] elapsed=%.2fs",
                    ctx.source,
                    ctx.method,
                    time.monotonic() - start,
                )
                return body

            except _RetryableStatusError as e:
                logger.warning(
                    "Retryable %d from %s.%s attempt=%d",
                    e.status_code,
                    ctx.source,
                    ctx.method,
                    attempt,
                )
                last_error = e
                if e.retry_after is not None:
                    wait = min(e.retry_after, retry.max_delay)

            except asyncio.TimeoutError:
                last_error = LiteratureApiError(
                    ctx.source, f"Timeout after {retry.timeout_seconds:.1f}s"
                )
                logger.warning(
                    "Timeout [%s.%s] attempt=%d",
                    ctx.source,
                    ctx.method,
                    attempt,
                )

            except aiohttp.ClientError as e:
                last_error = LiteratureApiError(ctx.source, f"Connection error: {e}")
                logger.warning(
                    "Connection error [%s.%s] attempt=%d: %s",
                    ctx.source,
                    ctx.method,
                    attempt,
                    e,
                )

            if attempt < retry.max_attempts:
                await asyncio.sleep(wait)

        logger.error(
            "All retries exhausted [%s.%s] after %.1fs: %s",
            ctx.source,
            ctx.method,
            time.monotonic() - start,
            last_error,
        )
        assert last_error is not None
        raise last_error

    # -- Convenience methods for subclasses ----------------------------------

    async def _rest_get(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> Any:
        """GET a JSON endpoint and return the decoded body."""
        body = await self._request(url, params=params, context=context)
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise LiteratureApiError(self._source_name, f"Invalid JSON response: {e}")

    async def _rest_get_xml(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> str:
        """GET an XML endpoint and return the raw text."""
        return await self._request(url, params=params, context=context)
