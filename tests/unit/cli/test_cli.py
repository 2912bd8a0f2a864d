"""Tests for CLI argument parsing and commands."""

import argparse
import json
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from mealplanner import __version__
from mealplanner.cli import create_parser, main_entry, parse_date
from mealplanner.cli.commands import run_day, run_events, run_list_sources, run_test_sources


@pytest.mark.unit
class TestParser:
    """Tests for the argument parser."""

    def test_parse_date_when_valid_then_date(self):
        assert parse_date("2025-07-08") == date(2025, 7, 8)

    def test_parse_date_when_invalid_then_argument_error(self):
        with pytest.raises(argparse.ArgumentTypeError, match="YYYY-MM-DD"):
            parse_date("07/08/2025")

    def test_events_command(self):
        args = create_parser().parse_args(
            ["events", "--start", "2025-07-07", "--end", "2025-07-13", "--tz", "Europe/London"]
        )

        assert args.command == "events"
        assert args.start == date(2025, 7, 7)
        assert args.end == date(2025, 7, 13)
        assert args.tz == "Europe/London"

    def test_events_command_requires_range(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["events", "--start", "2025-07-07"])

    def test_serve_overrides(self):
        args = create_parser().parse_args(["--verbose", "serve", "--host", "0.0.0.0", "--port", "3000"])

        assert args.verbose is True
        assert args.host == "0.0.0.0"
        assert args.port == 3000

    def test_no_command_defaults_to_none(self):
        args = create_parser().parse_args([])

        assert args.command is None
        assert args.verbose is False

    def test_log_level_accepts_verbose(self):
        assert create_parser().parse_args(["--log-level", "verbose"]).log_level == "VERBOSE"

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["--version"])

        assert __version__ in capsys.readouterr().out


@pytest.mark.unit
class TestCommands:
    """Tests for the command implementations."""

    @pytest.mark.asyncio
    async def test_run_events_prints_json(
        self, make_context, make_source, feed_server, make_calendar, make_vevent, capsys
    ):
        family = make_source("family")
        feed_server.add(family.url, make_calendar(make_vevent(uid="dinner")))

        async with make_context(family) as context:
            exit_code = await run_events(context, date(2025, 7, 7), date(2025, 7, 13), "UTC")

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["timezone"] == "UTC"
        assert [event["id"] for event in output["events"]] == ["family-dinner"]

    @pytest.mark.asyncio
    async def test_run_events_when_end_before_start_then_error(self, make_context):
        async with make_context() as context:
            assert await run_events(context, date(2025, 7, 13), date(2025, 7, 7)) == 1

    @pytest.mark.asyncio
    async def test_run_day(self, make_context, make_source, feed_server, make_calendar, make_vevent, capsys):
        family = make_source("family")
        feed_server.add(family.url, make_calendar(make_vevent(uid="dinner")))

        async with make_context(family) as context:
            exit_code = await run_day(context, date(2025, 7, 8), "America/Los_Angeles")

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert output["date"] == "2025-07-08"
        assert len(output["events"]) == 1

    @pytest.mark.asyncio
    async def test_run_test_sources_when_failure_then_nonzero(
        self, make_context, make_source, feed_server, capsys
    ):
        family = make_source("family", name="Family")
        feed_server.add(family.url, 500)

        async with make_context(family) as context:
            exit_code = await run_test_sources(context)

        output = json.loads(capsys.readouterr().out)
        assert exit_code == 1
        assert output["Family"]["success"] is False

    def test_run_list_sources(self, make_context, make_source, capsys):
        context = make_context(make_source("family"), make_source("work", enabled=False))

        assert run_list_sources(context) == 0

        output = json.loads(capsys.readouterr().out)
        assert [source["id"] for source in output] == ["family", "work"]
        assert output[1]["enabled"] is False


@pytest.mark.unit
class TestMainEntry:
    """Tests for main_entry dispatch."""

    @pytest.mark.asyncio
    async def test_main_entry_dispatches_to_command(self, settings):
        with patch("mealplanner.cli.get_settings", return_value=settings), patch(
            "mealplanner.cli.setup_logging"
        ) as mock_logging, patch("mealplanner.cli.run_list_sources", return_value=0) as mock_run:
            exit_code = await main_entry(["sources"])

        assert exit_code == 0
        mock_run.assert_called_once()
        mock_logging.assert_called_once_with(settings, None)

    @pytest.mark.asyncio
    async def test_main_entry_defaults_to_serve_with_overrides(self, settings):
        with patch("mealplanner.cli.get_settings", return_value=settings), patch(
            "mealplanner.cli.setup_logging"
        ) as mock_logging, patch("mealplanner.cli.run_serve", new=AsyncMock(return_value=0)) as mock_serve:
            exit_code = await main_entry(["-v", "serve", "--port", "3000"])

        assert exit_code == 0
        assert settings.web_port == 3000
        mock_logging.assert_called_once_with(settings, "DEBUG")
        mock_serve.assert_awaited_once()
