"""Route modules for the calendar_enhancer server."""

from .health_routes import register_health_routes
from .subscribe_routes import register_subscribe_routes

__all__ = [
    "register_health_routes",
    "register_subscribe_routes",
]
