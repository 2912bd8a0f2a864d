"""Data models for calendar source management."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_SOURCE_COLOR = "#4285f4"


class CalendarSource(BaseModel):
    """A configured ICS feed taking part in event aggregation."""

    id: str = Field(..., description="Unique, immutable source id")
    name: str = Field(..., description="Display name shown next to the feed's events")
    url: str = Field(..., description="ICS feed URL")
    color: str = Field(default=DEFAULT_SOURCE_COLOR, description="Display colour hint")
    enabled: bool = Field(default=True, description="Whether the feed takes part in aggregation")

    model_config = ConfigDict(frozen=True)


class SourceUpdate(BaseModel):
    """Partial update of a source; unset fields are left unchanged."""

    name: Optional[str] = None
    url: Optional[str] = None
    color: Optional[str] = None
    enabled: Optional[bool] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("name", "url")
    @classmethod
    def validate_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v

    def changes(self) -> dict:
        """Fields explicitly provided in this update."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
