"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from mealplanner.config import MealPlannerSettings, reset_settings
from mealplanner.events import CalendarContext, EventService, create_context
from mealplanner.sources import CalendarSource, SourceRegistry

FeedResponse = Union[str, int, tuple[int, str], Exception]


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "critical_path: Core functionality tests")


@pytest.fixture(autouse=True)
def reset_global_settings() -> Iterator[None]:
    """Keep the process-wide settings instance from leaking between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> MealPlannerSettings:
    """Settings isolated from any YAML file or MEALPLANNER_ environment."""
    for name in list(os.environ):
        if name.upper().startswith("MEALPLANNER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return MealPlannerSettings(
        config_path=tmp_path / "missing.yaml",
        default_timezone="America/Los_Angeles",
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


def vevent(
    uid: Optional[str] = "event-1@example.com",
    summary: Optional[str] = "Test Event",
    dtstart: Optional[str] = "DTSTART:20250708T150000Z",
    dtend: Optional[str] = "DTEND:20250708T160000Z",
    extra: str = "",
) -> str:
    """Build one VEVENT block; pass None to omit a line."""
    lines = ["BEGIN:VEVENT"]
    if uid is not None:
        lines.append(f"UID:{uid}")
    if summary is not None:
        lines.append(f"SUMMARY:{summary}")
    if dtstart is not None:
        lines.append(dtstart)
    if dtend is not None:
        lines.append(dtend)
    if extra:
        lines.extend(line for line in extra.strip().splitlines() if line.strip())
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


def calendar(*blocks: str, headers: str = "") -> str:
    """Wrap VEVENT (or other) blocks in a VCALENDAR."""
    lines = ["BEGIN:VCALENDAR", "VERSION:2.0", "PRODID:-//Test//Meal Planner Tests//EN"]
    if headers:
        lines.extend(line for line in headers.strip().splitlines() if line.strip())
    lines.extend(blocks)
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


@pytest.fixture
def make_vevent() -> Callable[..., str]:
    return vevent


@pytest.fixture
def make_calendar() -> Callable[..., str]:
    return calendar


class FeedServer:
    """Routes feed URLs to canned responses through an httpx mock transport."""

    def __init__(self) -> None:
        self.responses: dict[str, FeedResponse] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, response: FeedResponse) -> None:
        """Register the response for ``url``: body text, status, (status, body) or exception."""
        self.responses[url] = response

    def hits(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.get(str(request.url), 404)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, int):
            return httpx.Response(response, text="")
        if isinstance(response, tuple):
            status, body = response
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=response, headers={"content-type": "text/calendar"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def feed_server() -> FeedServer:
    return FeedServer()


def source(source_id: str, name: Optional[str] = None, enabled: bool = True) -> CalendarSource:
    """A calendar source whose URL is derived from its id."""
    return CalendarSource(
        id=source_id,
        name=name or source_id.title(),
        url=f"https://calendars.example.com/{source_id}.ics",
        color="#123456",
        enabled=enabled,
    )


@pytest.fixture
def make_source() -> Callable[..., CalendarSource]:
    return source


@pytest.fixture
def make_context(
    settings: MealPlannerSettings, feed_server: FeedServer, fake_clock: FakeClock
) -> Callable[..., CalendarContext]:
    """Factory for a context over the mock feed server with the given sources."""

    def _make(*sources: CalendarSource, **overrides: Any) -> CalendarContext:
        context_settings = settings.model_copy(update=overrides) if overrides else settings
        return create_context(
            context_settings,
            registry=SourceRegistry(list(sources)),
            transport=feed_server.transport,
            clock=fake_clock,
        )

    return _make


@pytest.fixture
def make_service(make_context: Callable[..., CalendarContext]) -> Callable[..., EventService]:
    def _make(*sources: CalendarSource, **overrides: Any) -> EventService:
        return EventService(make_context(*sources, **overrides))

    return _make
