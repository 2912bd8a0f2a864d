"""Tests for the calendar source registry."""

from itertools import count

import pytest
from pydantic import ValidationError

from mealplanner.config import MealPlannerSettings
from mealplanner.config.settings import CalendarSourceSettings
from mealplanner.sources import (
    DEFAULT_CALENDAR_SOURCES,
    CalendarSource,
    SourceRegistry,
    SourceUpdate,
)


@pytest.fixture
def family():
    return CalendarSource(id="family", name="Family", url="https://example.com/family.ics")


@pytest.fixture
def registry(family):
    ids = count(1)
    return SourceRegistry([family], id_factory=lambda: f"calendar-{next(ids)}")


@pytest.mark.unit
class TestSourceRegistry:
    """Tests for SourceRegistry."""

    def test_init_when_no_sources_then_defaults(self):
        registry = SourceRegistry()

        assert registry.list_sources() == list(DEFAULT_CALENDAR_SOURCES)
        assert len(registry) == len(DEFAULT_CALENDAR_SOURCES)

    def test_add_source_assigns_new_id_and_default_color(self, registry):
        source = registry.add_source("Work", "https://example.com/work.ics")

        assert source.id == "calendar-1"
        assert source.color == "#4285f4"
        assert source.enabled is True
        assert registry.get("calendar-1") == source
        assert len(registry) == 2

    def test_add_source_when_id_collides_then_suffixed(self, family):
        registry = SourceRegistry([family], id_factory=lambda: "family")

        first = registry.add_source("Again", "https://example.com/again.ics")
        second = registry.add_source("Again", "https://example.com/again.ics")

        assert first.id == "family-1"
        assert second.id == "family-2"

    def test_add_source_allows_duplicate_name_and_url(self, registry, family):
        duplicate = registry.add_source(family.name, family.url, color="#ff0000")

        assert duplicate.id != family.id
        assert [source.name for source in registry.list_sources()] == ["Family", "Family"]

    def test_update_source_applies_partial_fields(self, registry):
        registry.update_source("family", {"name": "Household", "enabled": False})

        updated = registry.get("family")
        assert updated.name == "Household"
        assert updated.enabled is False
        assert updated.url == "https://example.com/family.ics"
        assert updated.id == "family"

    def test_update_source_ignores_id_in_update(self, registry):
        registry.update_source("family", {"id": "other", "color": "#000000"})

        assert registry.get("family").color == "#000000"
        assert registry.get("other") is None

    def test_update_source_when_unknown_then_no_change(self, registry):
        before = registry.list_sources()

        registry.update_source("missing", SourceUpdate(name="Ghost"))

        assert registry.list_sources() == before

    def test_update_source_when_blank_name_then_validation_error(self, registry):
        with pytest.raises(ValidationError):
            registry.update_source("family", {"name": "  "})

    def test_remove_source(self, registry):
        registry.remove_source("family")

        assert registry.get("family") is None
        assert len(registry) == 0

    def test_remove_source_when_unknown_then_no_change(self, registry):
        registry.remove_source("missing")

        assert len(registry) == 1

    def test_list_enabled_excludes_disabled(self, registry):
        registry.add_source("Work", "https://example.com/work.ics", enabled=False)

        assert [source.id for source in registry.list_enabled()] == ["family"]
        assert len(registry.list_sources()) == 2

    def test_reset_restores_initial_sources(self, registry, family):
        registry.add_source("Work", "https://example.com/work.ics")
        registry.remove_source("family")

        registry.reset()

        assert registry.list_sources() == [family]

    def test_list_sources_returns_copy(self, registry):
        registry.list_sources().clear()

        assert len(registry) == 1

    def test_sources_are_immutable(self, family):
        with pytest.raises(ValidationError):
            family.name = "Changed"


@pytest.mark.unit
class TestSourceRegistryFromSettings:
    """Tests for seeding the registry from configuration."""

    def test_from_settings_when_no_sources_then_defaults(self, settings):
        registry = SourceRegistry.from_settings(settings)

        assert registry.list_sources() == list(DEFAULT_CALENDAR_SOURCES)

    def test_from_settings_uses_configured_sources(self, settings: MealPlannerSettings):
        configured = settings.model_copy(
            update={
                "default_color": "#abcdef",
                "calendar_sources": [
                    CalendarSourceSettings(name="Family", url="https://example.com/family.ics"),
                    CalendarSourceSettings(
                        id="work", name="Work", url="https://example.com/work.ics", color="#111111"
                    ),
                ],
            }
        )

        registry = SourceRegistry.from_settings(configured)
        sources = registry.list_sources()

        assert [source.id for source in sources] == ["calendar-1", "work"]
        assert sources[0].color == "#abcdef"
        assert sources[1].color == "#111111"
        assert registry.default_color == "#abcdef"
