from typing import List, Optional
from uuid import UUID

from sqlalchemy.future import select

from app.hotel.entity.hotel import ChatSession, Hotel, LocalRecommendation, ServiceType, ToneOfVoice
from app.hotel.repository.sql_schema.hotel import (
    ChatSessionModel,
    HotelModel,
    LocalRecommendationModel,
    RoomModel,
    ServiceTypeModel,
)
from app.hotel.service.service import IHotelRepository
from pkg.db_util.postgres_conn import PostgresConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _tone(value: Optional[str]) -> ToneOfVoice:
    try:
        return ToneOfVoice(value)
    except ValueError:
        return ToneOfVoice.RELAXED_RESORT


class HotelRepository(IHotelRepository):
    """Read-only access to hotel configuration and chat sessions."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres
        self.logger = logger

    async def get_hotel(self, hotel_id: UUID) -> Optional[Hotel]:
        async with self.postgres.get_session() as session:
            result = await session.execute(select(HotelModel).where(HotelModel.id == hotel_id))
            row = result.scalar_one_or_none()
            if not row:
                return None
            return Hotel(
                id=row.id,
                name=row.name,
                city=row.city,
                country=row.country,
                tone_of_voice=_tone(row.tone_of_voice),
                wifi_password=row.wifi_password,
                breakfast_hours=row.breakfast_hours,
                checkout_time=row.checkout_time,
                whatsapp_number=row.whatsapp_number,
                language=row.language or "en",
            )

    async def list_active_service_types(self, hotel_id: UUID) -> List[ServiceType]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(ServiceTypeModel)
                .where(ServiceTypeModel.hotel_id == hotel_id, ServiceTypeModel.is_active.is_(True))
                .order_by(ServiceTypeModel.sort_order.asc(), ServiceTypeModel.name.asc())
            )
            return [
                ServiceType(id=row.id, hotel_id=row.hotel_id, name=row.name, name_pt=row.name_pt, sort_order=row.sort_order)
                for row in result.scalars().all()
            ]

    async def list_active_recommendations(self, hotel_id: UUID, limit: int = 10) -> List[LocalRecommendation]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(LocalRecommendationModel)
                .where(LocalRecommendationModel.hotel_id == hotel_id, LocalRecommendationModel.is_active.is_(True))
                .order_by(LocalRecommendationModel.sort_order.asc())
                .limit(limit)
            )
            return [
                LocalRecommendation(id=row.id, name=row.name, category=row.category, description=row.description)
                for row in result.scalars().all()
            ]

    async def get_session(self, session_id: UUID) -> Optional[ChatSession]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(ChatSessionModel, RoomModel.room_number)
                .outerjoin(RoomModel, RoomModel.id == ChatSessionModel.room_id)
                .where(ChatSessionModel.id == session_id)
            )
            found = result.first()
            if not found:
                return None
            row, room_number = found
            return ChatSession(
                id=row.id,
                hotel_id=row.hotel_id,
                room_id=row.room_id,
                room_number=room_number,
                guest_language=row.guest_language,
                verified_at=row.verified_at,
                expires_at=row.expires_at,
            )
