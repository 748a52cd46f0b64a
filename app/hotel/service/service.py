from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from app.hotel.entity.hotel import ChatSession, Hotel, LocalRecommendation, ServiceType


class IHotelRepository(ABC):
    @abstractmethod
    async def get_hotel(self, hotel_id: UUID) -> Optional[Hotel]:
        pass

    @abstractmethod
    async def list_active_service_types(self, hotel_id: UUID) -> List[ServiceType]:
        pass

    @abstractmethod
    async def list_active_recommendations(self, hotel_id: UUID, limit: int = 10) -> List[LocalRecommendation]:
        pass

    @abstractmethod
    async def get_session(self, session_id: UUID) -> Optional[ChatSession]:
        pass
