from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional
from uuid import UUID

from app.chat.entity.chat import sanitize_text


class UpdateItineraryItemDTO(BaseModel):
    """Partial update; only fields that are present are changed."""
    model_config = ConfigDict(populate_by_name=True)

    session_id: UUID = Field(..., alias="sessionId")
    hotel_id: UUID = Field(..., alias="hotelId")
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")

    @field_validator("title", mode="before")
    @classmethod
    def _clean_title(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        cleaned = sanitize_text(value, 100)
        if not cleaned:
            raise ValueError("title must not be empty")
        return cleaned

    @field_validator("description", mode="before")
    @classmethod
    def _clean_description(cls, value: Any) -> Optional[str]:
        return sanitize_text(value, 500) or None

    @field_validator("location", mode="before")
    @classmethod
    def _clean_location(cls, value: Any) -> Optional[str]:
        return sanitize_text(value, 200) or None

    def changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True, exclude={"session_id", "hotel_id"})
        if changes.get("title", "") is None:
            del changes["title"]
        return changes
