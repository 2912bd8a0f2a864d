"""Settings management using Pydantic for type validation and configuration."""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..timezone import DEFAULT_TIMEZONE, resolve_timezone

logger = logging.getLogger(__name__)

# Strings that switch the event start-hour filter off
FILTER_DISABLED_VALUES = {"", "none", "off", "disabled", "false"}


def parse_filter_hour(value: Any) -> Optional[int]:
    """Normalize an event filter hour: 0-23, or None when filtering is disabled."""
    if value is None:
        return None
    if isinstance(value, str):
        if value.strip().lower() in FILTER_DISABLED_VALUES:
            return None
        try:
            value = int(value.strip())
        except ValueError:
            logger.warning("Ignoring unparsable event filter hour %r", value)
            return None
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning("Ignoring non-integer event filter hour %r", value)
        return None
    if not 0 <= value <= 23:
        logger.warning("Ignoring out-of-range event filter hour %d", value)
        return None
    return value


class CalendarSourceSettings(BaseModel):
    """A calendar feed listed in configuration, used to seed the source registry."""

    id: Optional[str] = Field(default=None, description="Stable source id (generated if omitted)")
    name: str = Field(..., description="Display name shown next to the feed's events")
    url: str = Field(..., description="ICS feed URL")
    color: Optional[str] = Field(default=None, description="Display colour hint")
    enabled: bool = Field(default=True, description="Whether the feed takes part in aggregation")


class CalendarConfig(BaseModel):
    """Configuration consumed by the event aggregator."""

    default_zone: str = Field(default=DEFAULT_TIMEZONE, description="Fallback IANA zone")
    filter_hour: Optional[int] = Field(
        default=None, description="Hide timed events starting before this local hour"
    )


class MealPlannerSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Private attributes
    _explicit_args: set = PrivateAttr(default_factory=set)

    # Application Configuration
    app_name: str = Field(default="MealPlanner", description="Application name")
    user_agent: str = Field(
        default="Meal Planner Calendar Integration",
        description="User-Agent header sent to calendar feeds",
    )

    # Calendar Configuration
    default_timezone: str = Field(
        default=DEFAULT_TIMEZONE, description="Zone used when the viewer's zone is unknown"
    )
    event_filter_hour: Optional[int] = Field(
        default=None, description="Minimum local start hour for timed events (None disables)"
    )
    default_color: str = Field(default="#4285f4", description="Colour for sources added without one")
    calendar_sources: list[CalendarSourceSettings] = Field(
        default_factory=list, description="Feeds the source registry starts with"
    )

    # Fetch and cache behaviour
    cache_ttl: int = Field(default=900, description="Event cache time-to-live in seconds (15 minutes)")
    request_timeout: float = Field(default=10.0, description="Per-feed fetch timeout in seconds")
    rrule_max_occurrences: int = Field(
        default=100, description="Maximum occurrences enumerated per recurring event"
    )

    # Web server
    web_host: str = Field(default="127.0.0.1", description="Host for the HTTP API")
    web_port: int = Field(default=8080, description="Port for the HTTP API")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    third_party_log_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )

    # File Paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "mealplanner")
    config_path: Optional[Path] = Field(default=None, description="Explicit YAML config file")

    model_config = SettingsConfigDict(
        env_prefix="MEALPLANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)

        # Track which arguments were explicitly provided
        self._explicit_args = set(kwargs.keys())

        self._load_yaml_config()

    @field_validator("event_filter_hour", mode="before")
    @classmethod
    def validate_filter_hour(cls, value: Any) -> Optional[int]:
        """Accept 0-23, or a sentinel such as "none" meaning filtering is disabled."""
        return parse_filter_hour(value)

    @field_validator("calendar_sources", mode="before")
    @classmethod
    def parse_calendar_sources(cls, value: Any) -> Any:
        if value is None:
            return []
        return value

    def _find_config_file(self) -> Optional[Path]:
        """Find config file: explicit path, then project directory, then user home."""
        if self.config_path is not None:
            return self.config_path if self.config_path.exists() else None

        project_root = Path(__file__).parent.parent.parent
        project_config = project_root / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _load_calendar_config(self, config_data: dict) -> None:
        """Load the calendar section of the YAML file."""
        calendar_config = config_data.get("calendar")
        if not isinstance(calendar_config, dict):
            return

        simple_settings = {
            "default_timezone": "default_timezone",
            "filter_hour": "event_filter_hour",
            "default_color": "default_color",
            "cache_ttl": "cache_ttl",
            "request_timeout": "request_timeout",
            "max_occurrences": "rrule_max_occurrences",
        }
        for yaml_key, field_name in simple_settings.items():
            if yaml_key in calendar_config and field_name not in self._explicit_args:
                value = calendar_config[yaml_key]
                if field_name == "event_filter_hour":
                    value = parse_filter_hour(value)
                setattr(self, field_name, value)

        if "sources" in calendar_config and "calendar_sources" not in self._explicit_args:
            self.calendar_sources = [
                CalendarSourceSettings(**source) for source in calendar_config["sources"] or []
            ]

    def _load_basic_settings(self, config_data: dict) -> None:
        """Load top-level application settings from YAML data."""
        for key in ("app_name", "user_agent", "log_level", "third_party_log_level"):
            if key in config_data and key not in self._explicit_args:
                setattr(self, key, config_data[key])

        web_config = config_data.get("web")
        if isinstance(web_config, dict):
            if "host" in web_config and "web_host" not in self._explicit_args:
                self.web_host = web_config["host"]
            if "port" in web_config and "web_port" not in self._explicit_args:
                self.web_port = int(web_config["port"])

    def _load_yaml_config(self) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)

            if not config_data:
                return

            self._load_basic_settings(config_data)
            self._load_calendar_config(config_data)
            logger.debug("Loaded configuration from %s", config_file)

        except Exception as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logger.warning(f"Could not load YAML config from {config_file}: {e}")

    def calendar_config(self) -> CalendarConfig:
        """Build the aggregator's configuration from these settings."""
        return CalendarConfig(
            default_zone=resolve_timezone(fallback=self.default_timezone),
            filter_hour=self.event_filter_hour,
        )

    @property
    def config_file(self) -> Path:
        """Path to the user's YAML configuration file."""
        return self.config_dir / "config.yaml"


# Global settings management
_settings_instance: Optional[MealPlannerSettings] = None


def get_settings(config_path: Optional[Union[str, Path]] = None) -> MealPlannerSettings:
    """Get the global settings instance, creating it lazily if needed.

    Args:
        config_path: Optional YAML file used when the instance is first created
    """
    if globals()["_settings_instance"] is None:
        kwargs: dict[str, Any] = {}
        if config_path is not None:
            kwargs["config_path"] = Path(config_path)
        globals()["_settings_instance"] = MealPlannerSettings(**kwargs)
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
