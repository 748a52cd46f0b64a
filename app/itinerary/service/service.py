from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from app.itinerary.entity.itinerary import ItineraryItem


class IItineraryRepository(ABC):
    @abstractmethod
    async def create(self, item: ItineraryItem) -> ItineraryItem:
        pass

    @abstractmethod
    async def get(self, item_id: UUID) -> Optional[ItineraryItem]:
        pass

    @abstractmethod
    async def list_for_session(self, session_id: UUID, hotel_id: UUID) -> List[ItineraryItem]:
        pass

    @abstractmethod
    async def update(self, item_id: UUID, changes: Dict[str, Any]) -> Optional[ItineraryItem]:
        pass

    @abstractmethod
    async def delete(self, item_id: UUID) -> bool:
        pass
