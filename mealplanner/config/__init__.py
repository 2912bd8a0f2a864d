"""Configuration package for the meal planner."""

from .settings import (
    CalendarConfig,
    CalendarSourceSettings,
    MealPlannerSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "CalendarConfig",
    "CalendarSourceSettings",
    "MealPlannerSettings",
    "get_settings",
    "reset_settings",
]
