from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel


class ItineraryCategory(str, Enum):
    RESTAURANT = "restaurant"
    ATTRACTION = "attraction"
    BEACH = "beach"
    NIGHTLIFE = "nightlife"
    SHOPPING = "shopping"
    TOUR = "tour"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "ItineraryCategory":
        """Unknown or missing categories become ``other``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.OTHER


class ItineraryItem(BaseModel):
    id: Optional[UUID] = None
    session_id: UUID
    hotel_id: UUID
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    category: ItineraryCategory = ItineraryCategory.OTHER
    start_time: datetime
    end_time: Optional[datetime] = None
    recommendation_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class ItineraryNotFoundError(Exception):
    pass


def next_full_hour(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


class ItineraryValidationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
