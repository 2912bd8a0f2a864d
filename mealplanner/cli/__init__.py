"""Command-line interface for the meal planner calendar service."""

import logging
from typing import Optional

from ..config import get_settings
from ..events import create_context
from ..utils import setup_logging
from .commands import run_day, run_events, run_list_sources, run_serve, run_test_sources
from .parser import create_parser, parse_date

logger = logging.getLogger(__name__)


async def main_entry(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, configure logging and run the chosen command.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    command = args.command or "serve"

    settings = get_settings(args.config)
    if command == "serve":
        if getattr(args, "host", None):
            settings.web_host = args.host
        if getattr(args, "port", None):
            settings.web_port = args.port

    log_level = "DEBUG" if args.verbose else args.log_level
    setup_logging(settings, log_level)
    logger.debug("Running command %s", command)

    async with create_context(settings) as context:
        if command == "serve":
            return await run_serve(settings, context)
        if command == "events":
            return await run_events(context, args.start, args.end, args.tz)
        if command == "day":
            return await run_day(context, args.date, args.tz)
        if command == "test-sources":
            return await run_test_sources(context)
        if command == "sources":
            return run_list_sources(context)

    parser.error(f"Unknown command: {command}")
    return 2


__all__ = ["create_parser", "main_entry", "parse_date"]
