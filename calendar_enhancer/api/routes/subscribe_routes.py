"""Calendar subscription proxy route for calendar_enhancer."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from aiohttp import web

from ...calendar.lite_exceptions import (
    CalendarContentTooLargeError,
    UnsupportedContentTypeError,
    UpstreamNetworkError,
    UpstreamStatusError,
    UpstreamURLError,
)
from ...calendar.lite_fetcher import UpstreamCalendarFetcher
from ...calendar.lite_streaming_pipeline import enhance_ics_stream
from ...core.config_manager import DEFAULT_CALENDAR_NAME, DEFAULT_DOWNLOAD_FILENAME, get_config_value
from ...core.health_tracker import HealthTracker

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
    "X-Content-Type-Options": "nosniff",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    "Referrer-Policy": "no-referrer",
}


def build_calendar_headers(calendar_name: str, download_filename: str) -> dict[str, str]:
    """Response headers for a rewritten calendar."""
    headers = {
        "Content-Type": "text/calendar; charset=utf-8",
        "Content-Disposition": f'attachment; filename="{download_filename}"',
        "X-WR-CALNAME": calendar_name,
    }
    headers.update(SECURITY_HEADERS)
    return headers


def register_subscribe_routes(
    app: Any,
    config: Any,
    fetcher: UpstreamCalendarFetcher,
    health_tracker: HealthTracker,
) -> None:
    """Register the streaming subscription route.

    Args:
        app: aiohttp web application
        config: Application configuration
        fetcher: Upstream calendar fetcher
        health_tracker: Health tracking instance
    """
    calendar_name = get_config_value(config, "calendar_name", DEFAULT_CALENDAR_NAME)
    download_filename = get_config_value(config, "download_filename", DEFAULT_DOWNLOAD_FILENAME)

    async def subscribe(request: web.Request) -> web.StreamResponse:
        """Fetch the upstream calendar and stream the rewritten version back."""
        target = request.query.get("url")
        if not target:
            return web.json_response({"error": "Missing URL"}, status=400)

        try:
            async with fetcher.open_stream(target) as upstream:
                headers = build_calendar_headers(calendar_name, download_filename)
                headers["X-Request-ID"] = request.get("correlation_id", "")
                response = web.StreamResponse(status=200, headers=headers)
                await response.prepare(request)

                try:
                    async for chunk in enhance_ics_stream(
                        upstream.aiter_bytes(), max_bytes=fetcher.max_body_bytes
                    ):
                        await response.write(chunk)
                except (httpx.HTTPError, CalendarContentTooLargeError) as e:
                    # Headers are gone; end the body. Any open event was never emitted.
                    logger.error("Calendar stream aborted after response start: %s", e)
                    health_tracker.record_stream_failure("stream_aborted")
                else:
                    health_tracker.record_stream_success()

                await response.write_eof()
                return response

        except UpstreamURLError as e:
            health_tracker.record_stream_failure("invalid_url")
            return web.json_response({"error": str(e)}, status=400)
        except UpstreamStatusError:
            health_tracker.record_stream_failure("upstream_status")
            return web.Response(text="Upstream Error", status=502)
        except UpstreamNetworkError:
            health_tracker.record_stream_failure("upstream_network")
            return web.Response(text="Upstream Error", status=502)
        except UnsupportedContentTypeError:
            health_tracker.record_stream_failure("content_type")
            return web.Response(text="Invalid Content-Type", status=415)
        except CalendarContentTooLargeError:
            health_tracker.record_stream_failure("too_large")
            return web.Response(text="File too large", status=413)

    app.router.add_get("/subscribe", subscribe, allow_head=False)

    logger.debug("Subscribe routes registered")
