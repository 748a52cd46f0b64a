from fastapi import APIRouter, Depends, HTTPException, Query, Request
from typing import Optional
from uuid import UUID

from app.auth.api.dto import BaseResponse
from app.core.logger import get_logger
from app.hotel.entity.hotel import SessionAuthorizationError
from app.hotel.service.hotel_service import HotelService
from app.itinerary.api.dto import UpdateItineraryItemDTO
from app.itinerary.entity.itinerary import ItineraryNotFoundError, ItineraryValidationError
from app.itinerary.service.itinerary_service import ItineraryService

itinerary_router = APIRouter(prefix="/itinerary", tags=["Itinerary"])
logger = get_logger("ItineraryRouter")


def get_itinerary_service(request: Request) -> Optional[ItineraryService]:
    return getattr(request.app.state, "itinerary_service", None)


def get_hotel_service(request: Request) -> Optional[HotelService]:
    return getattr(request.app.state, "hotel_service", None)


async def _verify(hotel_service: Optional[HotelService], itinerary_service: Optional[ItineraryService],
                  session_id: UUID, hotel_id: UUID) -> ItineraryService:
    if not hotel_service or not itinerary_service:
        raise HTTPException(status_code=503, detail="Itinerary service not available")
    try:
        await hotel_service.verify_session(session_id, hotel_id)
    except SessionAuthorizationError as e:
        raise HTTPException(status_code=403, detail=e.message)
    return itinerary_service


@itinerary_router.get("", response_model=BaseResponse)
async def list_itinerary_api(
    session_id: UUID = Query(..., alias="sessionId"),
    hotel_id: UUID = Query(..., alias="hotelId"),
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    itinerary_service: Optional[ItineraryService] = Depends(get_itinerary_service),
):
    """Session's itinerary ordered by start time."""
    service = await _verify(hotel_service, itinerary_service, session_id, hotel_id)
    items = await service.list_items(session_id, hotel_id)
    return BaseResponse(
        status=True,
        message="Itinerary fetched successfully",
        data=[item.model_dump(mode="json") for item in items],
    )


@itinerary_router.patch("/{item_id}", response_model=BaseResponse)
async def update_itinerary_item_api(
    item_id: UUID,
    body: UpdateItineraryItemDTO,
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    itinerary_service: Optional[ItineraryService] = Depends(get_itinerary_service),
):
    service = await _verify(hotel_service, itinerary_service, body.session_id, body.hotel_id)
    try:
        item = await service.update_item(item_id, body.session_id, body.hotel_id, body.changes())
    except ItineraryNotFoundError:
        raise HTTPException(status_code=404, detail="Itinerary item not found")
    except ItineraryValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    return BaseResponse(status=True, message="Itinerary item updated", data=item.model_dump(mode="json"))


@itinerary_router.delete("/{item_id}", response_model=BaseResponse)
async def delete_itinerary_item_api(
    item_id: UUID,
    session_id: UUID = Query(..., alias="sessionId"),
    hotel_id: UUID = Query(..., alias="hotelId"),
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    itinerary_service: Optional[ItineraryService] = Depends(get_itinerary_service),
):
    service = await _verify(hotel_service, itinerary_service, session_id, hotel_id)
    try:
        await service.delete_item(item_id, session_id, hotel_id)
    except ItineraryNotFoundError:
        raise HTTPException(status_code=404, detail="Itinerary item not found")
    logger.info(f"Deleted itinerary item {item_id} for session {session_id}")
    return BaseResponse(status=True, message="Itinerary item deleted", data={"id": str(item_id)})
