"""Health check route for calendar_enhancer."""

from __future__ import annotations

import logging

from aiohttp import web

from ...core.health_tracker import HealthTracker

logger = logging.getLogger(__name__)


def register_health_routes(app: web.Application, health_tracker: HealthTracker) -> None:
    """Register the /health endpoint.

    Args:
        app: aiohttp web application
        health_tracker: Health tracking instance
    """

    async def health_check(_request: web.Request) -> web.Response:
        """Health check endpoint for monitoring system status."""
        health = health_tracker.get_health_status()
        payload = {
            "status": health.status,
            "uptime_s": health.uptime_seconds,
            "pid": health.pid,
            "streams_served": health.streams_served,
            "streams_failed": health.streams_failed,
            "last_failure_reason": health.last_failure_reason,
        }
        return web.json_response(payload, status=200 if health.status == "ok" else 503)

    app.router.add_get("/health", health_check)

    logger.debug("Health routes registered")
