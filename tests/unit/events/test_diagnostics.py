"""Tests for per-source diagnostics."""

import httpx
import pytest

from mealplanner.events import check_source, check_sources
from mealplanner.events.diagnostics import DIAGNOSTIC_USER_AGENT


@pytest.mark.unit
class TestCheckSources:
    """Tests for check_source and check_sources."""

    @pytest.mark.asyncio
    async def test_check_source_reports_count_and_size(
        self, make_context, make_source, feed_server, make_calendar, make_vevent
    ):
        family = make_source("family")
        body = make_calendar(
            make_vevent(uid="a"),
            make_vevent(uid="b", extra="RRULE:FREQ=DAILY"),
            make_vevent(uid="no-start", dtstart=None),
        )
        feed_server.add(family.url, body)

        async with make_context(family) as context:
            result = await check_source(context, family)

        assert result.success is True
        assert result.event_count == 3
        assert result.response_size == len(body)
        assert result.to_dict() == {
            "success": True,
            "eventCount": 3,
            "responseSize": len(body),
            "timezone": "America/Los_Angeles",
            "componentCount": 4,
            "warnings": ["Event no-start missing DTSTART, skipping"],
        }

    @pytest.mark.asyncio
    async def test_check_source_reports_calendar_metadata(
        self, make_context, make_source, feed_server, make_calendar, make_vevent
    ):
        family = make_source("family")
        feed_server.add(
            family.url,
            make_calendar(
                make_vevent(uid="a"),
                headers="X-WR-CALNAME:Family Meals\r\nX-WR-TIMEZONE:Europe/Paris",
            ),
        )

        async with make_context(family) as context:
            result = await check_source(context, family)

        data = result.to_dict()
        assert data["calendarName"] == "Family Meals"
        assert data["timezone"] == "Europe/Paris"
        assert data["componentCount"] == 2
        assert "warnings" not in data

    @pytest.mark.asyncio
    async def test_check_source_uses_diagnostic_user_agent(
        self, make_context, make_source, feed_server, make_calendar
    ):
        family = make_source("family")
        feed_server.add(family.url, make_calendar())

        async with make_context(family) as context:
            await check_source(context, family)

        assert feed_server.requests[0].headers["User-Agent"] == DIAGNOSTIC_USER_AGENT

    @pytest.mark.asyncio
    async def test_check_source_reports_http_error(self, make_context, make_source, feed_server):
        family = make_source("family")
        feed_server.add(family.url, 404)

        async with make_context(family) as context:
            result = await check_source(context, family)

        assert result.success is False
        assert result.error == "HTTP 404: Not Found"
        assert result.to_dict() == {"success": False, "error": "HTTP 404: Not Found"}

    @pytest.mark.asyncio
    async def test_check_sources_bypasses_cache_and_isolates_failures(
        self, make_context, make_source, feed_server, make_calendar, make_vevent
    ):
        family = make_source("family", name="Family")
        offline = make_source("offline", name="Offline")
        hidden = make_source("hidden", name="Hidden", enabled=False)
        feed_server.add(family.url, make_calendar(make_vevent()))
        feed_server.add(offline.url, httpx.ConnectError("Name or service not known"))

        async with make_context(family, offline, hidden) as context:
            first = await check_sources(context)
            second = await check_sources(context)

        assert list(first) == ["Family", "Offline"]
        assert first["Family"].success is True
        assert first["Offline"].success is False
        assert "Network error" in first["Offline"].error
        assert second["Family"].event_count == 1
        assert feed_server.hits(family.url) == 2
        assert len(context.cache) == 0
