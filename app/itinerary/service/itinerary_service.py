# app/itinerary/service/itinerary_service.py
from datetime import timezone
from typing import Any, Dict, List
from uuid import UUID

from app.core.logger import get_logger
from app.itinerary.entity.itinerary import (
    ItineraryCategory,
    ItineraryItem,
    ItineraryNotFoundError,
    ItineraryValidationError,
)
from app.itinerary.service.service import IItineraryRepository

logger = get_logger("ItineraryService")


class ItineraryService:
    """A guest session's planned activities. Plain CRUD, no lifecycle."""

    def __init__(self, repository: IItineraryRepository):
        self.repository = repository

    async def add_item(self, item: ItineraryItem) -> ItineraryItem:
        if item.end_time is not None and item.end_time < item.start_time:
            raise ItineraryValidationError("endTime must not be before startTime")
        created = await self.repository.create(item)
        logger.info(f"Itinerary item added: id={created.id} session={created.session_id}")
        return created

    async def list_items(self, session_id: UUID, hotel_id: UUID) -> List[ItineraryItem]:
        return await self.repository.list_for_session(session_id, hotel_id)

    async def _owned_item(self, item_id: UUID, session_id: UUID, hotel_id: UUID) -> ItineraryItem:
        item = await self.repository.get(item_id)
        if item is None or item.session_id != session_id or item.hotel_id != hotel_id:
            raise ItineraryNotFoundError(item_id)
        return item

    async def update_item(
        self, item_id: UUID, session_id: UUID, hotel_id: UUID, changes: Dict[str, Any]
    ) -> ItineraryItem:
        item = await self._owned_item(item_id, session_id, hotel_id)
        changes = dict(changes)
        if "category" in changes:
            changes["category"] = ItineraryCategory.coerce(changes["category"])
        for key in ("start_time", "end_time"):
            value = changes.get(key)
            if value is not None and value.tzinfo is None:
                changes[key] = value.replace(tzinfo=timezone.utc)
        if changes.get("start_time", item.start_time) is None:
            raise ItineraryValidationError("startTime is required")

        merged = item.model_copy(update=changes)
        if merged.end_time is not None and merged.end_time < merged.start_time:
            raise ItineraryValidationError("endTime must not be before startTime")

        updated = await self.repository.update(item_id, changes)
        if updated is None:
            raise ItineraryNotFoundError(item_id)
        return updated

    async def delete_item(self, item_id: UUID, session_id: UUID, hotel_id: UUID) -> None:
        await self._owned_item(item_id, session_id, hotel_id)
        if not await self.repository.delete(item_id):
            raise ItineraryNotFoundError(item_id)
        logger.info(f"Itinerary item deleted: id={item_id}")
