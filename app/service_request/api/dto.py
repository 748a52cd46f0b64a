from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from uuid import UUID

from app.service_request.entity.service_request import RequestStatus


class UpdateStatusDTO(BaseModel):
    """Staff status change."""
    model_config = ConfigDict(populate_by_name=True)

    status: RequestStatus
    staff_response: Optional[str] = Field(default=None, max_length=1000, alias="staffResponse")


class GuestSessionDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: UUID = Field(..., alias="sessionId")
    hotel_id: UUID = Field(..., alias="hotelId")


class GuestRespondDTO(GuestSessionDTO):
    """Guest answer to a staff-proposed modification."""
    accept: bool
