"""Tests for the ICS HTTP fetcher."""

import asyncio

import httpx
import pytest

from mealplanner.ics import (
    ICSFetcher,
    ICSFetchError,
    ICSNetworkError,
    ICSTimeoutError,
)
from mealplanner.ics.fetcher import DEFAULT_USER_AGENT

FEED_URL = "https://calendars.example.com/family.ics"


@pytest.mark.unit
class TestICSFetcher:
    """Tests for ICSFetcher."""

    def test_init_reads_settings(self, settings):
        fetcher = ICSFetcher(settings.model_copy(update={"request_timeout": 3.5}))

        assert fetcher.timeout == 3.5
        assert fetcher.user_agent == DEFAULT_USER_AGENT

    @pytest.mark.asyncio
    async def test_fetch_ics_success(self, settings, feed_server, make_calendar):
        feed_server.add(FEED_URL, make_calendar())

        async with ICSFetcher(settings, transport=feed_server.transport) as fetcher:
            response = await fetcher.fetch_ics(FEED_URL)

        assert response.status_code == 200
        assert response.url == FEED_URL
        assert response.content.startswith("BEGIN:VCALENDAR")
        request = feed_server.requests[0]
        assert request.headers["User-Agent"] == "Meal Planner Calendar Integration"
        assert "text/calendar" in request.headers["Accept"]

    @pytest.mark.asyncio
    async def test_fetch_ics_follows_redirects(self, settings, feed_server, make_calendar):
        moved = "https://calendars.example.com/moved.ics"

        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == FEED_URL:
                return httpx.Response(301, headers={"Location": moved})
            return httpx.Response(200, text=make_calendar())

        async with ICSFetcher(settings, transport=httpx.MockTransport(handler)) as fetcher:
            response = await fetcher.fetch_ics(FEED_URL)

        assert response.url == moved

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 404, 500, 503])
    async def test_fetch_ics_when_http_error_then_fetch_error(self, settings, feed_server, status):
        feed_server.add(FEED_URL, status)

        async with ICSFetcher(settings, transport=feed_server.transport) as fetcher:
            with pytest.raises(ICSFetchError) as exc_info:
                await fetcher.fetch_ics(FEED_URL)

        assert exc_info.value.status_code == status
        assert exc_info.value.message.startswith(f"HTTP {status}")

    @pytest.mark.asyncio
    async def test_fetch_ics_when_body_empty_then_fetch_error(self, settings, feed_server):
        feed_server.add(FEED_URL, (200, "  \r\n"))

        async with ICSFetcher(settings, transport=feed_server.transport) as fetcher:
            with pytest.raises(ICSFetchError, match="Empty ICS data"):
                await fetcher.fetch_ics(FEED_URL)

    @pytest.mark.asyncio
    async def test_fetch_ics_when_dns_fails_then_network_error(self, settings, feed_server):
        feed_server.add(FEED_URL, httpx.ConnectError("Name or service not known"))

        async with ICSFetcher(settings, transport=feed_server.transport) as fetcher:
            with pytest.raises(ICSNetworkError):
                await fetcher.fetch_ics(FEED_URL)

    @pytest.mark.asyncio
    async def test_fetch_ics_when_transport_times_out_then_timeout_error(self, settings, feed_server):
        feed_server.add(FEED_URL, httpx.ReadTimeout("timed out"))

        async with ICSFetcher(settings, transport=feed_server.transport) as fetcher:
            with pytest.raises(ICSTimeoutError, match="Request timeout"):
                await fetcher.fetch_ics(FEED_URL)

    @pytest.mark.asyncio
    async def test_fetch_ics_when_slow_then_total_timeout(self, settings, make_calendar):
        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, text=make_calendar())

        fetcher = ICSFetcher(
            settings.model_copy(update={"request_timeout": 0.05}),
            transport=httpx.MockTransport(slow_handler),
        )
        try:
            with pytest.raises(ICSTimeoutError):
                await fetcher.fetch_ics(FEED_URL)
        finally:
            await fetcher.close()

    @pytest.mark.asyncio
    async def test_close_leaves_external_client_open(self, settings, feed_server):
        client = httpx.AsyncClient(transport=feed_server.transport)
        fetcher = ICSFetcher(settings, client=client)

        await fetcher.close()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_close_closes_owned_client(self, settings, feed_server, make_calendar):
        feed_server.add(FEED_URL, make_calendar())
        fetcher = ICSFetcher(settings, transport=feed_server.transport)
        await fetcher.fetch_ics(FEED_URL)
        client = fetcher.client

        await fetcher.close()

        assert client.is_closed is True
