"""Configuration management for the calendar_enhancer proxy."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_HOSTS = ("srh-community.campusweb.cloud",)
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024  # 10 MB limit
DEFAULT_CALENDAR_NAME = "My Schedule+"
DEFAULT_DOWNLOAD_FILENAME = "srh-enhanced.ics"

_INT_SETTINGS = {
    "CALENDAR_ENHANCER_WEB_PORT": "server_port",
    "CALENDAR_ENHANCER_MAX_BODY_BYTES": "max_body_bytes",
    "CALENDAR_ENHANCER_REQUEST_TIMEOUT": "request_timeout",
    "CALENDAR_ENHANCER_MAX_RETRIES": "max_retries",
}


def default_config() -> dict[str, Any]:
    """Configuration used when nothing is set in the environment."""
    return {
        "server_bind": "0.0.0.0",  # nosec B104 - proxy is meant to listen on all interfaces
        "server_port": 8080,
        "allowed_hosts": list(DEFAULT_ALLOWED_HOSTS),
        "max_body_bytes": DEFAULT_MAX_BODY_BYTES,
        "request_timeout": 30,
        "max_retries": 2,
        "retry_backoff_factor": 1.5,
        "calendar_name": DEFAULT_CALENDAR_NAME,
        "download_filename": DEFAULT_DOWNLOAD_FILENAME,
        "debug_logging": False,
    }


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.warning("Failed to read .env file %s (continuing)", self.env_file_path, exc_info=True)
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - CALENDAR_ENHANCER_WEB_HOST -> 'server_bind'
        - CALENDAR_ENHANCER_WEB_PORT -> 'server_port' (int)
        - CALENDAR_ENHANCER_ALLOWED_HOSTS -> 'allowed_hosts' (comma separated)
        - CALENDAR_ENHANCER_MAX_BODY_BYTES -> 'max_body_bytes' (int)
        - CALENDAR_ENHANCER_REQUEST_TIMEOUT -> 'request_timeout' (int seconds)
        - CALENDAR_ENHANCER_MAX_RETRIES -> 'max_retries' (int)
        - CALENDAR_ENHANCER_CALENDAR_NAME -> 'calendar_name'
        - CALENDAR_ENHANCER_DOWNLOAD_FILENAME -> 'download_filename'
        - CALENDAR_ENHANCER_DEBUG -> 'debug_logging' (bool)

        Returns:
            Configuration dictionary compatible with start_server
        """
        cfg = default_config()

        host = os.environ.get("CALENDAR_ENHANCER_WEB_HOST")
        if host:
            cfg["server_bind"] = host

        for env_key, cfg_key in _INT_SETTINGS.items():
            raw = os.environ.get(env_key)
            if not raw:
                continue
            try:
                cfg[cfg_key] = int(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)

        allowed = os.environ.get("CALENDAR_ENHANCER_ALLOWED_HOSTS")
        if allowed:
            hosts = [h.strip().lower() for h in allowed.split(",") if h.strip()]
            if hosts:
                cfg["allowed_hosts"] = hosts

        name = os.environ.get("CALENDAR_ENHANCER_CALENDAR_NAME")
        if name:
            cfg["calendar_name"] = name

        filename = os.environ.get("CALENDAR_ENHANCER_DOWNLOAD_FILENAME")
        if filename:
            cfg["download_filename"] = filename

        debug = os.environ.get("CALENDAR_ENHANCER_DEBUG", "")
        if debug.strip().lower() in ("1", "true", "yes", "on"):
            cfg["debug_logging"] = True

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
