# app/hotel/service/hotel_service.py
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from pydantic import ValidationError
from redis.exceptions import RedisError

from app.core.logger import get_logger
from app.hotel.entity.hotel import (
    ChatSession,
    HotelChatContext,
    HotelNotFoundError,
    SessionAuthorizationError,
)
from app.hotel.service.service import IHotelRepository
from pkg.redis.client import RedisClient

logger = get_logger("HotelService")

MAX_RECOMMENDATIONS = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HotelService:
    """Read access to hotel configuration and verified guest sessions."""

    def __init__(
        self,
        repository: IHotelRepository,
        redis_client: Optional[RedisClient] = None,
        cache_ttl_seconds: int = 300,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.redis_client = redis_client
        self.cache_ttl_seconds = cache_ttl_seconds
        self.clock = clock

    @staticmethod
    def _cache_key(hotel_id: UUID) -> str:
        return f"hotel_context:{hotel_id}"

    async def _cached_context(self, hotel_id: UUID) -> Optional[HotelChatContext]:
        if self.redis_client is None:
            return None
        try:
            cached = await self.redis_client.async_get_value(self._cache_key(hotel_id))
        except RedisError:
            return None
        if not isinstance(cached, dict):
            return None
        try:
            return HotelChatContext.model_validate(cached)
        except ValidationError:
            logger.warning(f"Discarding stale cached context for hotel {hotel_id}")
            return None

    async def get_chat_context(self, hotel_id: UUID) -> HotelChatContext:
        """Hotel record with its active service types and local recommendations."""
        context = await self._cached_context(hotel_id)
        if context is not None:
            return context

        hotel = await self.repository.get_hotel(hotel_id)
        if hotel is None:
            raise HotelNotFoundError(hotel_id)
        context = HotelChatContext(
            hotel=hotel,
            service_types=await self.repository.list_active_service_types(hotel_id),
            recommendations=await self.repository.list_active_recommendations(hotel_id, MAX_RECOMMENDATIONS),
        )

        if self.redis_client is not None:
            try:
                await self.redis_client.async_set_value(
                    self._cache_key(hotel_id), context.model_dump(mode="json"), expiry=self.cache_ttl_seconds
                )
            except RedisError:
                logger.warning(f"Could not cache context for hotel {hotel_id}")
        return context

    async def verify_session(self, session_id: UUID, hotel_id: UUID) -> ChatSession:
        """
        Return the session if it exists, belongs to ``hotel_id`` and has not expired.

        Every failure raises the same SessionAuthorizationError, so callers
        cannot tell a foreign session from a missing one.
        """
        session = await self.repository.get_session(session_id)
        if session is None or session.hotel_id != hotel_id:
            raise SessionAuthorizationError()
        if session.expires_at is not None:
            expires_at = session.expires_at
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
            if expires_at <= self.clock():
                raise SessionAuthorizationError()
        return session
