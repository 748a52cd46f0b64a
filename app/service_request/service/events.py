from typing import Any, AsyncIterator, Dict, Optional
from uuid import UUID

from redis.exceptions import RedisError

from app.core.logger import get_logger
from app.service_request.entity.service_request import ServiceRequest
from pkg.redis.client import RedisClient

logger = get_logger("RequestEvents")

CREATED = "created"
TRANSITIONED = "transitioned"


def channel_for(hotel_id: UUID) -> str:
    return f"service_requests:{hotel_id}"


class RequestEventPublisher:
    """
    Broadcasts request changes over Redis pub/sub. Without a Redis client
    publishing does nothing and ``enabled`` is False.
    """

    def __init__(self, redis_client: Optional[RedisClient] = None):
        self.redis_client = redis_client

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None

    async def publish(self, event_type: str, request: ServiceRequest) -> None:
        if self.redis_client is None:
            return
        message = {"type": event_type, "request": request.model_dump(mode="json")}
        try:
            await self.redis_client.publish(channel_for(request.hotel_id), message)
        except RedisError as e:
            # Row is already committed.
            logger.error(f"Failed to publish {event_type} event for request {request.id}: {e}")

    async def listen(
        self,
        hotel_id: UUID,
        room_id: Optional[UUID] = None,
        heartbeat_seconds: float = 10.0,
    ) -> AsyncIterator[Optional[Dict[str, Any]]]:
        """
        Yield events for a hotel (optionally one room), and None after every
        idle ``heartbeat_seconds``.
        """
        if self.redis_client is None:
            raise RuntimeError("Live updates are not configured")
        async for message in self.redis_client.subscribe(channel_for(hotel_id), idle_timeout=heartbeat_seconds):
            if message is None:
                yield None
                continue
            if not isinstance(message, dict):
                continue
            if room_id is not None and str((message.get("request") or {}).get("room_id")) != str(room_id):
                continue
            yield message
