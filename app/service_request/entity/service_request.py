# app/service_request/entity/service_request.py

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DECLINED = "declined"
    MODIFIED = "modified"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({
    RequestStatus.COMPLETED,
    RequestStatus.DECLINED,
    RequestStatus.CANCELLED,
    RequestStatus.REJECTED,
})


class Resolution(str, Enum):
    FULFILLED = "fulfilled"
    CANCELLED_BY_GUEST = "cancelled_by_guest"
    DECLINED_BY_STAFF = "declined_by_staff"
    ACCEPTED_MODIFIED = "accepted_modified"
    REJECTED_MODIFIED = "rejected_modified"


class ActorRole(str, Enum):
    GUEST = "guest"
    STAFF = "staff"


class ServiceRequest(BaseModel):
    id: UUID
    hotel_id: UUID
    room_id: Optional[UUID] = None
    service_type_id: Optional[UUID] = None
    request_type: str
    details: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    guest_language: str = "en"
    staff_response: Optional[str] = None
    resolution: Optional[Resolution] = None
    guest_accepted: Optional[bool] = None
    responded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NewServiceRequest(BaseModel):
    """A request about to be written; always starts ``pending``."""
    hotel_id: UUID
    room_id: Optional[UUID] = None
    service_type_id: Optional[UUID] = None
    request_type: str
    details: Optional[str] = None
    guest_language: str = "en"


class RequestActor(BaseModel):
    """
    Who is asking for a transition. Guests are scoped to a room,
    staff to a whole hotel.
    """
    role: ActorRole
    hotel_id: UUID
    room_id: Optional[UUID] = None
    user_id: Optional[str] = None


class RequestNotFoundError(Exception):
    def __init__(self, request_id: UUID):
        super().__init__(f"Service request {request_id} not found")
        self.request_id = request_id


class InvalidTransitionError(Exception):
    """The requested status change is not allowed for this actor from the current status."""

    def __init__(
        self,
        current: RequestStatus,
        target: RequestStatus,
        actor: ActorRole,
        message: Optional[str] = None,
    ):
        self.current = current
        self.target = target
        self.actor = actor
        self.message = message or (
            f"Cannot move request from {current.value} to {target.value} as {actor.value}"
        )
        super().__init__(self.message)


class ResponseRequiredError(InvalidTransitionError):
    def __init__(self, current: RequestStatus, target: RequestStatus, actor: ActorRole):
        super().__init__(
            current, target, actor,
            message=f"A staff response is required to mark a request as {target.value}",
        )


class TransitionConflictError(InvalidTransitionError):
    """Another actor changed the request first."""

    def __init__(self, expected: RequestStatus, current: RequestStatus, target: RequestStatus, actor: ActorRole):
        super().__init__(
            current, target, actor,
            message=f"Request is no longer {expected.value} (now {current.value})",
        )
        self.expected = expected
