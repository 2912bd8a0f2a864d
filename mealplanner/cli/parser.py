"""Command-line argument parsing for the meal planner calendar service."""

import argparse
import logging
from datetime import date, datetime

from .. import __version__

logger = logging.getLogger(__name__)


def parse_date(date_str: str) -> date:
    """Parse date string in YYYY-MM-DD format for command-line arguments.

    Raises:
        argparse.ArgumentTypeError: If the date format is invalid
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError as err:
        raise argparse.ArgumentTypeError(f"Invalid date format: {date_str}. Use YYYY-MM-DD") from err


def _add_zone_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tz",
        metavar="ZONE",
        help="IANA timezone of the viewer (defaults to the configured timezone)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the command line parser.

    Example:
        >>> parser = create_parser()
        >>> args = parser.parse_args(["events", "--start", "2025-07-07", "--end", "2025-07-13"])
        >>> args.command
        'events'
    """
    parser = argparse.ArgumentParser(
        prog="mealplanner",
        description="Meal planner calendar service - merges ICS feeds into one event list",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s serve --port 3000                       # Run the HTTP API on port 3000
  %(prog)s events --start 2025-07-07 --end 2025-07-13
  %(prog)s day --date 2025-07-08 --tz Europe/London
  %(prog)s test-sources                            # Check every enabled feed
  %(prog)s sources                                 # List configured feeds
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", metavar="PATH", help="YAML configuration file")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging and detailed output"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Override the configured log level",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Host to bind (default from configuration)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default from configuration)")

    events_parser = subparsers.add_parser("events", help="Print merged events for a date range")
    events_parser.add_argument("--start", type=parse_date, required=True, help="First day (YYYY-MM-DD)")
    events_parser.add_argument("--end", type=parse_date, required=True, help="Last day (YYYY-MM-DD)")
    _add_zone_argument(events_parser)

    day_parser = subparsers.add_parser("day", help="Print events falling on one local day")
    day_parser.add_argument("--date", type=parse_date, help="Day (YYYY-MM-DD, default today)")
    _add_zone_argument(day_parser)

    subparsers.add_parser("test-sources", help="Fetch and parse every enabled source")
    subparsers.add_parser("sources", help="List configured calendar sources")

    return parser


__all__ = ["create_parser", "parse_date"]
