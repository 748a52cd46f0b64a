import json
from typing import AsyncIterator, List, Optional
from uuid import UUID

from fastapi import HTTPException

from app.auth.api.dto import StaffIdentity
from app.core.logger import get_logger
from app.hotel.entity.hotel import SessionAuthorizationError
from app.hotel.service.hotel_service import HotelService
from app.service_request.entity.service_request import (
    ActorRole,
    InvalidTransitionError,
    RequestActor,
    RequestNotFoundError,
    RequestStatus,
    ResponseRequiredError,
    ServiceRequest,
)
from app.service_request.service.events import RequestEventPublisher
from app.service_request.service.request_service import RequestService

logger = get_logger("RequestHandler")


def staff_actor(staff: StaffIdentity) -> RequestActor:
    try:
        hotel_id = UUID(staff.hotel_id)
    except ValueError:
        raise HTTPException(status_code=403, detail="Staff access required")
    return RequestActor(role=ActorRole.STAFF, hotel_id=hotel_id, user_id=staff.user_id)


async def guest_actor(hotel_service: Optional[HotelService], session_id: UUID, hotel_id: UUID) -> RequestActor:
    if not hotel_service:
        raise HTTPException(status_code=503, detail="Hotel service not available")
    try:
        session = await hotel_service.verify_session(session_id, hotel_id)
    except SessionAuthorizationError as e:
        raise HTTPException(status_code=403, detail=e.message)
    return RequestActor(role=ActorRole.GUEST, hotel_id=hotel_id, room_id=session.room_id)


async def handle_transition(
    request_service: Optional[RequestService],
    request_id: UUID,
    actor: RequestActor,
    new_status: RequestStatus,
    response_text: Optional[str] = None,
) -> ServiceRequest:
    """Single entry point for every status change, staff or guest."""
    if not request_service:
        raise HTTPException(status_code=503, detail="Request service not available")
    try:
        return await request_service.transition_request(request_id, actor, new_status, response_text)
    except RequestNotFoundError:
        raise HTTPException(status_code=404, detail="Service request not found")
    except ResponseRequiredError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)


async def handle_list(
    request_service: Optional[RequestService],
    actor: RequestActor,
    status: Optional[RequestStatus] = None,
) -> List[ServiceRequest]:
    if not request_service:
        raise HTTPException(status_code=503, detail="Request service not available")
    if actor.role == ActorRole.STAFF:
        return await request_service.list_for_staff(actor.hotel_id, status)
    return await request_service.list_for_room(actor.hotel_id, actor.room_id)


def live_updates_available(publisher: Optional[RequestEventPublisher]) -> RequestEventPublisher:
    if publisher is None or not publisher.enabled:
        raise HTTPException(status_code=503, detail="Live updates are not available; poll the list endpoint instead")
    return publisher


async def live_update_events(
    publisher: RequestEventPublisher,
    actor: RequestActor,
    heartbeat_seconds: float,
) -> AsyncIterator[str]:
    """SSE frames for request changes, with a keep-alive comment after every idle interval."""
    room_id = actor.room_id if actor.role == ActorRole.GUEST else None
    if actor.role == ActorRole.GUEST and room_id is None:
        yield ": keep-alive\n\n"
        return
    logger.info(f"Live updates opened for hotel={actor.hotel_id} role={actor.role.value}")
    async for message in publisher.listen(actor.hotel_id, room_id=room_id, heartbeat_seconds=heartbeat_seconds):
        if message is None:
            yield ": keep-alive\n\n"
            continue
        yield f"data: {json.dumps(message, default=str)}\n\n"
