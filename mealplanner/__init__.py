"""Meal Planner calendar backend.

Aggregates the household's ICS calendar feeds into one timezone-correct event
list for the meal-planning calendar view.
"""

__version__ = "1.0.0"
