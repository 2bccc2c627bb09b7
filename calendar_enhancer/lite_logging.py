"""
Central logging configuration for calendar_enhancer.

Keeps the proxy's own loggers readable while capping the chatty third-party
libraries (aiohttp access logs, httpx request logs) at WARNING.
"""

import logging
import os
from typing import Optional


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records for request tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        # Import here to avoid a circular import through the api package
        from .api.middleware.correlation_id import get_request_id

        record.request_id = get_request_id()
        return True


# Third-party libraries that generate excessive debug logs
NOISY_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "aiohttp.web_log": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "charset_normalizer": logging.WARNING,
}

ENHANCER_MODULES = [
    "calendar_enhancer",
    "calendar_enhancer.__main__",
    "calendar_enhancer.api.server",
    "calendar_enhancer.api.routes.health_routes",
    "calendar_enhancer.api.routes.subscribe_routes",
    "calendar_enhancer.calendar.lite_enhancer",
    "calendar_enhancer.calendar.lite_fetcher",
    "calendar_enhancer.calendar.lite_streaming_pipeline",
    "calendar_enhancer.core.config_manager",
    "calendar_enhancer.core.http_client",
]


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for calendar_enhancer.

    Args:
        debug_mode: Whether to enable debug logging for calendar_enhancer modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDAR_ENHANCER_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDAR_ENHANCER_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDAR_ENHANCER_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALENDAR_ENHANCER_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    # Only add a handler if none exist (preserve the colorlog setup from __init__)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
            )
        )
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    logger_config = dict(NOISY_LOGGERS)
    enhancer_level = logging.DEBUG if final_debug else logging.INFO
    for module in ENHANCER_MODULES:
        logger_config[module] = enhancer_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info(
            "Debug logging enabled for calendar_enhancer modules. "
            "Third-party debug logs suppressed."
        )
    else:
        root_logger.info("Production logging configuration applied.")
