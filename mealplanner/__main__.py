"""Entry point for `python -m mealplanner` and the ``mealplanner`` console script."""

import asyncio
import logging
import sys

from mealplanner.cli import main_entry

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the CLI and exit with its status code."""
    try:
        exit_code = asyncio.run(main_entry())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("Operation cancelled by user")
        sys.exit(130)


if __name__ == "__main__":
    main()
