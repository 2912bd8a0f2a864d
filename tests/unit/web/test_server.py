"""Tests for the web server runner."""

import asyncio

import pytest

from mealplanner.web import SERVICE_KEY, create_app, serve


@pytest.mark.unit
class TestServer:
    """Tests for create_app and serve."""

    def test_create_app_registers_routes(self, make_context):
        app = create_app(make_context(), close_context=False)

        paths = {route.resource.canonical for route in app.router.routes()}

        assert "/api/health" in paths
        assert "/api/calendar/events" in paths
        assert "/api/calendar/sources/{source_id}" in paths
        assert app[SERVICE_KEY].context is not None

    @pytest.mark.asyncio
    async def test_serve_runs_until_stop_event(self, settings, make_context):
        stop_event = asyncio.Event()
        context = make_context()
        asyncio.get_running_loop().call_later(0.1, stop_event.set)

        await asyncio.wait_for(
            serve(settings.model_copy(update={"web_port": 0}), context=context, stop_event=stop_event),
            timeout=5,
        )

        assert stop_event.is_set()
