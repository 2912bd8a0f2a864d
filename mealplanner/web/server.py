"""aiohttp application factory and server runner."""

import asyncio
import contextlib
import logging
import signal
from datetime import datetime
from typing import Any, Callable, Optional

from aiohttp import web

from ..events import CalendarContext, EventService, create_context
from .routes import error_middleware, now_utc, register_calendar_routes

logger = logging.getLogger(__name__)

CONTEXT_KEY = web.AppKey("calendar_context", CalendarContext)
SERVICE_KEY = web.AppKey("event_service", EventService)


def create_app(
    context: CalendarContext,
    service: Optional[EventService] = None,
    time_provider: Callable[[], datetime] = now_utc,
    close_context: bool = True,
) -> web.Application:
    """Create the aiohttp application serving the calendar API.

    Args:
        context: Shared calendar state
        service: Event aggregator (created over ``context`` when omitted)
        time_provider: Clock for response timestamps
        close_context: Release the context's HTTP client on app cleanup
    """
    service = service or EventService(context)

    app = web.Application(middlewares=[error_middleware])
    app[CONTEXT_KEY] = context
    app[SERVICE_KEY] = service

    register_calendar_routes(app, context, service, time_provider=time_provider)

    if close_context:

        async def _close_context(_app: web.Application) -> None:
            await context.aclose()

        app.on_cleanup.append(_close_context)

    logger.debug("Web application created")
    return app


async def serve(
    settings: Any,
    context: Optional[CalendarContext] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the HTTP server until ``stop_event`` is set or a signal arrives.

    Args:
        settings: Application settings (``web_host``, ``web_port``)
        context: Shared calendar state (created from settings when omitted)
        stop_event: External stop signal; SIGINT/SIGTERM are handled when omitted
    """
    context = context or create_context(settings)
    app = create_app(context)

    runner = web.AppRunner(app)
    await runner.setup()

    host = settings.web_host
    port = int(settings.web_port)
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise

    logger.info("Server started successfully on %s:%d", host, port)

    if stop_event is None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(settings: Any) -> None:
    """Start the asyncio event loop and HTTP server."""
    asyncio.run(serve(settings))
