from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from typing import Optional
from uuid import UUID

from app.auth.api.dependencies import CurrentStaffDep
from app.auth.api.dto import BaseResponse
from app.core.config import settings
from app.core.logger import get_logger
from app.hotel.service.hotel_service import HotelService
from app.service_request.api.dto import GuestRespondDTO, GuestSessionDTO, UpdateStatusDTO
from app.service_request.api.handler import (
    guest_actor,
    handle_list,
    handle_transition,
    live_update_events,
    live_updates_available,
    staff_actor,
)
from app.service_request.entity.service_request import RequestStatus
from app.service_request.service.events import RequestEventPublisher
from app.service_request.service.request_service import RequestService

request_router = APIRouter(prefix="/requests", tags=["Service Requests"])
logger = get_logger("RequestRouter")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_request_service(request: Request) -> Optional[RequestService]:
    """Dependency to get request service from app.state."""
    return getattr(request.app.state, "request_service", None)


def get_hotel_service(request: Request) -> Optional[HotelService]:
    return getattr(request.app.state, "hotel_service", None)


def get_event_publisher(request: Request) -> Optional[RequestEventPublisher]:
    return getattr(request.app.state, "request_events", None)


# ────────────────────────────────────────────────
# Staff
# ────────────────────────────────────────────────

@request_router.get("", response_model=BaseResponse)
async def list_requests_api(
    staff: CurrentStaffDep,
    status: Optional[RequestStatus] = Query(default=None),
    request_service: Optional[RequestService] = Depends(get_request_service),
):
    """Hotel's service requests, newest first."""
    requests = await handle_list(request_service, staff_actor(staff), status)
    return BaseResponse(
        status=True,
        message="Service requests fetched successfully",
        data=[r.model_dump(mode="json") for r in requests],
    )


@request_router.get("/stream")
async def staff_stream_api(
    staff: CurrentStaffDep,
    publisher: Optional[RequestEventPublisher] = Depends(get_event_publisher),
):
    events = live_update_events(
        live_updates_available(publisher), staff_actor(staff), settings.LIVE_UPDATE_HEARTBEAT_SECONDS
    )
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@request_router.patch("/{request_id}/status", response_model=BaseResponse)
async def update_status_api(
    request_id: UUID,
    body: UpdateStatusDTO,
    staff: CurrentStaffDep,
    request_service: Optional[RequestService] = Depends(get_request_service),
):
    updated = await handle_transition(request_service, request_id, staff_actor(staff), body.status, body.staff_response)
    logger.info(f"Staff {staff.user_id} set request {request_id} to {updated.status.value}")
    return BaseResponse(status=True, message="Service request updated", data=updated.model_dump(mode="json"))


# ────────────────────────────────────────────────
# Guest
# ────────────────────────────────────────────────

@request_router.get("/guest", response_model=BaseResponse)
async def list_guest_requests_api(
    session_id: UUID = Query(..., alias="sessionId"),
    hotel_id: UUID = Query(..., alias="hotelId"),
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    request_service: Optional[RequestService] = Depends(get_request_service),
):
    actor = await guest_actor(hotel_service, session_id, hotel_id)
    requests = await handle_list(request_service, actor)
    return BaseResponse(
        status=True,
        message="Service requests fetched successfully",
        data=[r.model_dump(mode="json") for r in requests],
    )


@request_router.get("/guest/stream")
async def guest_stream_api(
    session_id: UUID = Query(..., alias="sessionId"),
    hotel_id: UUID = Query(..., alias="hotelId"),
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    publisher: Optional[RequestEventPublisher] = Depends(get_event_publisher),
):
    actor = await guest_actor(hotel_service, session_id, hotel_id)
    events = live_update_events(live_updates_available(publisher), actor, settings.LIVE_UPDATE_HEARTBEAT_SECONDS)
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@request_router.post("/{request_id}/cancel", response_model=BaseResponse)
async def cancel_request_api(
    request_id: UUID,
    body: GuestSessionDTO,
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    request_service: Optional[RequestService] = Depends(get_request_service),
):
    actor = await guest_actor(hotel_service, body.session_id, body.hotel_id)
    updated = await handle_transition(request_service, request_id, actor, RequestStatus.CANCELLED)
    return BaseResponse(status=True, message="Service request cancelled", data=updated.model_dump(mode="json"))


@request_router.post("/{request_id}/respond", response_model=BaseResponse)
async def respond_to_modification_api(
    request_id: UUID,
    body: GuestRespondDTO,
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    request_service: Optional[RequestService] = Depends(get_request_service),
):
    actor = await guest_actor(hotel_service, body.session_id, body.hotel_id)
    target = RequestStatus.IN_PROGRESS if body.accept else RequestStatus.REJECTED
    updated = await handle_transition(request_service, request_id, actor, target)
    message = "Modification accepted" if body.accept else "Modification rejected"
    return BaseResponse(status=True, message=message, data=updated.model_dump(mode="json"))
