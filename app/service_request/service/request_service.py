# app/service_request/service/request_service.py
from datetime import datetime, timezone
from typing import Callable, List, Optional
from uuid import UUID

from app.core.logger import get_logger
from app.service_request.entity.service_request import (
    ActorRole,
    InvalidTransitionError,
    NewServiceRequest,
    RequestActor,
    RequestNotFoundError,
    RequestStatus,
    ServiceRequest,
    TransitionConflictError,
)
from app.service_request.service.events import CREATED, TRANSITIONED, RequestEventPublisher
from app.service_request.service.lifecycle import resolve_transition, transition_changes
from app.service_request.service.service import IServiceRequestRepository

logger = get_logger("RequestService")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestService:
    """Creates service requests and moves them through their lifecycle."""

    def __init__(
        self,
        repository: IServiceRequestRepository,
        publisher: Optional[RequestEventPublisher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.publisher = publisher or RequestEventPublisher()
        self.clock = clock

    async def create_request(self, new_request: NewServiceRequest) -> ServiceRequest:
        request = await self.repository.create(new_request)
        logger.info(f"Service request created: id={request.id} type={request.request_type} hotel={request.hotel_id}")
        await self.publisher.publish(CREATED, request)
        return request

    async def list_for_staff(self, hotel_id: UUID, status: Optional[RequestStatus] = None) -> List[ServiceRequest]:
        return await self.repository.list_for_hotel(hotel_id, status)

    async def list_for_room(self, hotel_id: UUID, room_id: Optional[UUID]) -> List[ServiceRequest]:
        if room_id is None:
            return []
        return await self.repository.list_for_room(hotel_id, room_id)

    @staticmethod
    def _visible_to(request: ServiceRequest, actor: RequestActor) -> bool:
        if request.hotel_id != actor.hotel_id:
            return False
        if actor.role == ActorRole.GUEST:
            return actor.room_id is not None and request.room_id == actor.room_id
        return True

    async def get_request(self, request_id: UUID, actor: RequestActor) -> ServiceRequest:
        request = await self.repository.get(request_id)
        if request is None or not self._visible_to(request, actor):
            raise RequestNotFoundError(request_id)
        return request

    async def transition_request(
        self,
        request_id: UUID,
        actor: RequestActor,
        new_status: RequestStatus,
        response_text: Optional[str] = None,
    ) -> ServiceRequest:
        """
        Move a request to ``new_status`` on behalf of ``actor``.

        Raises RequestNotFoundError when the request does not exist or is
        outside the actor's scope, InvalidTransitionError (or one of its
        subclasses) when the move is not allowed, and TransitionConflictError
        when someone else changed the request in the meantime.
        """
        request = await self.get_request(request_id, actor)
        current = request.status
        try:
            rule = resolve_transition(actor.role, current, new_status, response_text)
        except InvalidTransitionError as e:
            logger.warning(f"Rejected transition for request {request_id}: {e.message}")
            raise

        changes = transition_changes(rule, actor.role, new_status, response_text, self.clock())
        updated = await self.repository.update_if_status(request_id, current, changes)
        if updated is None:
            latest = await self.repository.get(request_id)
            if latest is None:
                raise RequestNotFoundError(request_id)
            logger.warning(
                f"Transition conflict for request {request_id}: expected {current.value}, found {latest.status.value}"
            )
            raise TransitionConflictError(current, latest.status, new_status, actor.role)

        logger.info(
            f"Request {request_id} moved {current.value} -> {new_status.value} by {actor.role.value}"
        )
        await self.publisher.publish(TRANSITIONED, updated)
        return updated
