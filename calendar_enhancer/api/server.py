"""calendar_enhancer.api.server - asyncio HTTP server for the rewriting proxy.

This module provides the server core that:
- builds the aiohttp application with correlation-id middleware
- exposes GET /subscribe?url=... (streamed rewrite) and GET /health
- runs until SIGINT/SIGTERM (or an external stop event) and then cleans up
  the shared upstream HTTP clients
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from typing import Any, Optional

from aiohttp import web

from ..calendar.lite_fetcher import UpstreamCalendarFetcher
from ..core.config_manager import get_config_value
from ..core.health_tracker import HealthTracker
from ..core.http_client import close_all_clients
from ..lite_logging import configure_lite_logging
from .middleware import correlation_id_middleware
from .routes import register_health_routes, register_subscribe_routes

logger = logging.getLogger(__name__)

MAX_PORT_ATTEMPTS = 10


def _make_app(
    config: Any,
    fetcher: Optional[UpstreamCalendarFetcher] = None,
    health_tracker: Optional[HealthTracker] = None,
) -> web.Application:
    """Create the aiohttp web application with all routes registered.

    Args:
        config: Server configuration dict or attribute object
        fetcher: Optional upstream fetcher (defaults to one built from ``config``
            that uses the shared pooled client)
        health_tracker: Optional health tracker (a fresh one by default)
    """
    fetcher = fetcher or UpstreamCalendarFetcher(config)
    health_tracker = health_tracker or HealthTracker()

    app = web.Application(middlewares=[correlation_id_middleware])

    register_subscribe_routes(app, config, fetcher, health_tracker)
    register_health_routes(app, health_tracker)

    async def _cleanup_clients(_app: web.Application) -> None:
        try:
            await close_all_clients()
            logger.debug("Shared HTTP clients cleaned up")
        except Exception as e:
            logger.warning("Error cleaning up shared HTTP clients: %s", e)

    app.on_cleanup.append(_cleanup_clients)
    return app


async def _serve(config: Any, external_stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the server until signalled to stop.

    Args:
        config: Server configuration object/dict.
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers will NOT be registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()

    app = _make_app(config)
    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", "0.0.0.0")  # nosec B104
    configured_port = int(get_config_value(config, "server_port", 8080))

    # Try configured port first, then increment if in use
    actual_port = configured_port
    for port_offset in range(MAX_PORT_ATTEMPTS):
        actual_port = configured_port + port_offset
        site = web.TCPSite(runner, host=host, port=actual_port)
        try:
            await site.start()
            break
        except OSError as e:
            if "address already in use" not in str(e).lower():
                logger.exception("Failed to start server on %s:%d", host, actual_port)
                await runner.cleanup()
                raise
            logger.debug("Port %d in use, trying next port", actual_port)
    else:
        await runner.cleanup()
        raise RuntimeError(
            f"No available port found in range {configured_port}-"
            f"{configured_port + MAX_PORT_ATTEMPTS - 1}"
        )

    if actual_port != configured_port:
        logger.warning(
            "Configured port %d was in use, using port %d instead", configured_port, actual_port
        )

    logger.info("Server started on %s:%d (pid %d)", host, actual_port, os.getpid())

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Using external stop event - skipping signal handler registration")

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: dict or attribute object with keys:
            - server_bind: host to bind (str)
            - server_port: port (int)
            - allowed_hosts: upstream host allowlist (list of str)
            - max_body_bytes: upstream body cap in bytes (int)
            - request_timeout / max_retries / retry_backoff_factor: upstream HTTP tuning
            - calendar_name / download_filename: response header values
            - debug_logging: enable debug logging for calendar_enhancer (bool)

    Blocks the calling thread until SIGINT/SIGTERM is received.
    """
    debug_mode = bool(get_config_value(config, "debug_logging", False))
    configure_lite_logging(debug_mode=debug_mode)
    logger.info("Logging configuration applied: debug_mode=%s", debug_mode)

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
