"""calendar_enhancer - streaming iCalendar rewriting proxy.

The package rewrites RFC 5545 feeds in transit: personal free text is removed,
event titles are normalized and free-text locations are replaced by geocoded
campus locations. Imports are kept light so the core can be used without the
web stack being loaded.
"""

__version__ = "0.1.0"

from typing import Any, Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors the CALENDAR_ENHANCER_DEBUG environment variable (truthy values:
    "1", "true", "yes", "on") which forces DEBUG verbosity regardless of the
    requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDAR_ENHANCER_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[Any] = None) -> None:
    """Start the calendar_enhancer HTTP proxy.

    Args:
        args: Optional argparse namespace; ``args.port`` overrides the configured port.

    Behavior:
    - Initialize console logging early using CALENDAR_ENHANCER_LOG_LEVEL (env).
    - Load configuration from .env and the environment.
    - Apply command line overrides, then block in ``start_server`` until shutdown.
    """
    import logging
    import os

    _init_logging(os.environ.get("CALENDAR_ENHANCER_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .api.server import start_server
    from .core.config_manager import ConfigManager

    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            try:
                cfg["server_port"] = int(port)
                logger.debug("Applied command line port override: %d", cfg["server_port"])
            except (ValueError, TypeError) as e:
                logger.warning("Invalid port value from command line '%s': %s", port, e)

    # Only surface a small set of config keys to keep upstream hosts out of logs.
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: cfg.get(k) for k in ("server_bind", "server_port", "max_body_bytes", "debug_logging")},
    )

    start_server(cfg)
