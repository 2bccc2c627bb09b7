"""Upstream calendar fetcher - calendar_enhancer.

Opens the upstream calendar as a streaming httpx response after validating
the URL against the host allowlist, and checks status, content type and
declared size before a single body byte is consumed.
"""

import asyncio
import contextlib
import logging
import random
from collections.abc import AsyncIterator
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from ..core.config_manager import DEFAULT_ALLOWED_HOSTS, DEFAULT_MAX_BODY_BYTES, get_config_value
from ..core.http_client import get_shared_client, record_client_error, record_client_success
from .lite_exceptions import (
    CalendarContentTooLargeError,
    UnsupportedContentTypeError,
    UpstreamNetworkError,
    UpstreamStatusError,
    UpstreamURLError,
)

logger = logging.getLogger(__name__)

ACCEPTED_CONTENT_TYPES = ("text/calendar", "text/plain")

# Backoff calculation constants
MAX_BACKOFF_SECONDS = 30.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3


def describe_url(url: str) -> str:
    """Loggable form of an upstream URL: scheme and host only.

    Calendar URLs carry per-user secrets in their path and query.
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return "<malformed url>"
    return f"{parsed.scheme}://{parsed.hostname or '?'}/..."


class UpstreamCalendarFetcher:
    """Streams calendar feeds from allowlisted upstream hosts."""

    def __init__(
        self,
        settings: Any,
        client: Optional[httpx.AsyncClient] = None,
        client_id: str = "upstream",
    ) -> None:
        """Initialize the fetcher.

        Args:
            settings: Config dict or attribute object (allowed_hosts, max_body_bytes,
                request_timeout, max_retries, retry_backoff_factor)
            client: Optional preconfigured client; when omitted the shared pooled
                client for ``client_id`` is used
            client_id: Shared client identifier
        """
        self.settings = settings
        self._client = client
        self._client_id = client_id
        self._track_health = client is None

        hosts = get_config_value(settings, "allowed_hosts", DEFAULT_ALLOWED_HOSTS)
        self.allowed_hosts = frozenset(h.lower() for h in hosts or ())
        self.max_body_bytes: Optional[int] = get_config_value(
            settings, "max_body_bytes", DEFAULT_MAX_BODY_BYTES
        )
        self.request_timeout = float(get_config_value(settings, "request_timeout", 30))
        self.max_retries = int(get_config_value(settings, "max_retries", 2))
        self.backoff_factor = float(get_config_value(settings, "retry_backoff_factor", 1.5))

    def validate_url(self, url: str) -> str:
        """Check scheme and host of an upstream URL.

        Returns:
            The URL unchanged when it may be fetched

        Raises:
            UpstreamURLError: For malformed URLs, non-HTTP(S) schemes and hosts
                outside the allowlist (an empty allowlist permits any host)
        """
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError as e:
            raise UpstreamURLError("Malformed URL") from e

        if parsed.scheme not in ("http", "https"):
            raise UpstreamURLError("Protocol forbidden")
        if not hostname:
            raise UpstreamURLError("Malformed URL")
        if self.allowed_hosts and hostname.lower() not in self.allowed_hosts:
            logger.warning("Blocked upstream host %s", hostname)
            raise UpstreamURLError("Domain not authorized")

        return url

    @contextlib.asynccontextmanager
    async def open_stream(self, url: str) -> AsyncIterator[httpx.Response]:
        """Open the upstream calendar as a checked streaming response.

        Usage::

            async with fetcher.open_stream(url) as response:
                async for chunk in response.aiter_bytes():
                    ...

        Raises:
            UpstreamURLError: URL rejected before any request is made
            UpstreamNetworkError: Connection/timeout failure after retries
            UpstreamStatusError: Upstream status other than 200
            UnsupportedContentTypeError: Not a calendar/plain-text body
            CalendarContentTooLargeError: Declared Content-Length above the cap
        """
        self.validate_url(url)
        client = await self._get_client()
        response = await self._send_with_retry(client, url)
        try:
            self._check_response(response)
            yield response
        finally:
            await response.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client(self._client_id)

    def _check_response(self, response: httpx.Response) -> None:
        if response.status_code != 200:
            logger.warning("Upstream returned HTTP %d", response.status_code)
            raise UpstreamStatusError(
                f"Upstream returned HTTP {response.status_code}", response.status_code
            )

        content_type = response.headers.get("content-type", "").lower()
        if not any(ct in content_type for ct in ACCEPTED_CONTENT_TYPES):
            logger.warning("Rejected upstream content type %r", content_type)
            raise UnsupportedContentTypeError("Invalid Content-Type", content_type)

        declared = response.headers.get("content-length")
        if declared and self.max_body_bytes is not None:
            try:
                declared_bytes = int(declared)
            except ValueError:
                logger.debug("Ignoring unparseable Content-Length %r", declared)
            else:
                if declared_bytes > self.max_body_bytes:
                    raise CalendarContentTooLargeError(
                        f"Upstream declares {declared_bytes} bytes, limit is {self.max_body_bytes}",
                        limit_bytes=self.max_body_bytes,
                    )

    def _calculate_backoff(self, attempt: int) -> float:
        """Exponential backoff with jitter, capped at MAX_BACKOFF_SECONDS."""
        base_backoff = min(self.backoff_factor**attempt, MAX_BACKOFF_SECONDS)
        jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
        return base_backoff + jitter

    async def _send_with_retry(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """Send the GET in streaming mode, retrying network failures only."""
        attempt = 0
        while True:
            request = client.build_request("GET", url, timeout=self.request_timeout)
            try:
                response = await client.send(request, stream=True, follow_redirects=False)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if self._track_health:
                    await record_client_error(self._client_id)

                if attempt >= self.max_retries:
                    logger.error(
                        "All %d attempts failed for %s: %s", attempt + 1, describe_url(url), e
                    )
                    raise UpstreamNetworkError(f"Network error: {e}") from e

                backoff_time = self._calculate_backoff(attempt)
                logger.warning(
                    "Upstream request failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt + 1,
                    self.max_retries + 1,
                    backoff_time,
                    e,
                )
                await asyncio.sleep(backoff_time)
                attempt += 1
                continue

            if self._track_health:
                await record_client_success(self._client_id)
            logger.debug(
                "Upstream %s answered HTTP %d (attempt %d)",
                describe_url(url),
                response.status_code,
                attempt + 1,
            )
            return response
