"""
Read-side entities of the hotel collaborator: the hotel record, its active
service types and recommendations, and verified guest chat sessions.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ToneOfVoice(str, Enum):
    RELAXED_RESORT = "relaxed_resort"
    FORMAL_BUSINESS = "formal_business"
    BOUTIQUE_CHIC = "boutique_chic"
    FAMILY_FRIENDLY = "family_friendly"


class Hotel(BaseModel):
    id: UUID
    name: str
    city: str
    country: str
    tone_of_voice: ToneOfVoice = ToneOfVoice.RELAXED_RESORT
    wifi_password: Optional[str] = None
    breakfast_hours: Optional[str] = None
    checkout_time: Optional[str] = None
    whatsapp_number: Optional[str] = None
    language: str = "en"


class ServiceType(BaseModel):
    id: UUID
    hotel_id: UUID
    name: str
    name_pt: Optional[str] = None
    sort_order: int = 0

    def display_name(self, language: str) -> str:
        """Name shown to a guest speaking ``language``."""
        if language == "pt" and self.name_pt:
            return self.name_pt
        return self.name

    def matches(self, label: str) -> bool:
        wanted = label.strip().casefold()
        return any(
            candidate and candidate.strip().casefold() == wanted
            for candidate in (self.name, self.name_pt)
        )


class LocalRecommendation(BaseModel):
    id: UUID
    name: str
    category: str
    description: Optional[str] = None


class HotelChatContext(BaseModel):
    """Everything the concierge needs to know about a hotel for one chat turn."""
    hotel: Hotel
    service_types: List[ServiceType] = Field(default_factory=list)
    recommendations: List[LocalRecommendation] = Field(default_factory=list)

    def service_names(self, language: str) -> List[str]:
        return [service.display_name(language) for service in self.service_types]

    def resolve_service_type(self, label: str) -> Optional[ServiceType]:
        return next((service for service in self.service_types if service.matches(label)), None)


class ChatSession(BaseModel):
    """A verified guest conversation scope, created by PIN verification."""
    id: UUID
    hotel_id: UUID
    room_id: Optional[UUID] = None
    room_number: Optional[str] = None
    guest_language: str = "en"
    verified_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class SessionAuthorizationError(Exception):
    """Unknown, expired, or foreign-hotel session. Never says which."""

    def __init__(self, message: str = "Invalid session"):
        super().__init__(message)
        self.message = message


class HotelNotFoundError(Exception):
    def __init__(self, hotel_id: UUID):
        super().__init__(f"Hotel {hotel_id} not found")
        self.hotel_id = hotel_id
