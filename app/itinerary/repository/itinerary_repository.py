# app/itinerary/repository/itinerary_repository.py

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.future import select

from app.itinerary.entity.itinerary import ItineraryItem
from app.itinerary.repository.sql_schema.itinerary import ItineraryItemModel
from app.itinerary.service.service import IItineraryRepository
from pkg.db_util.postgres_conn import PostgresConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _to_entity(row: ItineraryItemModel) -> ItineraryItem:
    return ItineraryItem(
        id=row.id,
        session_id=row.session_id,
        hotel_id=row.hotel_id,
        title=row.title,
        description=row.description,
        location=row.location,
        category=row.category,
        start_time=row.start_time,
        end_time=row.end_time,
        recommendation_id=row.recommendation_id,
        created_at=row.created_at,
    )


class ItineraryRepository(IItineraryRepository):
    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres
        self.logger = logger

    async def create(self, item: ItineraryItem) -> ItineraryItem:
        async with self.postgres.get_session() as session:
            row = ItineraryItemModel(
                session_id=item.session_id,
                hotel_id=item.hotel_id,
                recommendation_id=item.recommendation_id,
                title=item.title,
                description=item.description,
                location=item.location,
                category=item.category.value,
                start_time=item.start_time,
                end_time=item.end_time,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            return _to_entity(row)

    async def get(self, item_id: UUID) -> Optional[ItineraryItem]:
        async with self.postgres.get_session() as session:
            result = await session.execute(select(ItineraryItemModel).where(ItineraryItemModel.id == item_id))
            row = result.scalar_one_or_none()
            return _to_entity(row) if row else None

    async def list_for_session(self, session_id: UUID, hotel_id: UUID) -> List[ItineraryItem]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(ItineraryItemModel)
                .where(ItineraryItemModel.session_id == session_id, ItineraryItemModel.hotel_id == hotel_id)
                .order_by(ItineraryItemModel.start_time.asc())
            )
            return [_to_entity(row) for row in result.scalars().all()]

    async def update(self, item_id: UUID, changes: Dict[str, Any]) -> Optional[ItineraryItem]:
        values = {key: (value.value if isinstance(value, Enum) else value) for key, value in changes.items()}
        values["updated_at"] = datetime.now(timezone.utc)
        async with self.postgres.get_session() as session:
            result = await session.execute(
                update(ItineraryItemModel)
                .where(ItineraryItemModel.id == item_id)
                .values(**values)
                .returning(ItineraryItemModel)
                .execution_options(synchronize_session=False)
            )
            row = result.scalar_one_or_none()
            return _to_entity(row) if row else None

    async def delete(self, item_id: UUID) -> bool:
        async with self.postgres.get_session() as session:
            result = await session.execute(delete(ItineraryItemModel).where(ItineraryItemModel.id == item_id))
            deleted = result.rowcount > 0
            if deleted:
                self.logger.info(f"Deleted itinerary item {item_id}")
            return deleted
