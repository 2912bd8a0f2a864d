"""HTTP API for calendar events, sources and diagnostics."""

from .routes import RequestError, error_middleware, parse_instant, register_calendar_routes
from .server import CONTEXT_KEY, SERVICE_KEY, create_app, serve, start_server

__all__ = [
    "CONTEXT_KEY",
    "SERVICE_KEY",
    "RequestError",
    "create_app",
    "error_middleware",
    "parse_instant",
    "register_calendar_routes",
    "serve",
    "start_server",
]
