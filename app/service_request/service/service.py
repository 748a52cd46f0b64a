from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from uuid import UUID

from app.service_request.entity.service_request import NewServiceRequest, RequestStatus, ServiceRequest


class IServiceRequestRepository(ABC):
    @abstractmethod
    async def create(self, request: NewServiceRequest) -> ServiceRequest:
        pass

    @abstractmethod
    async def get(self, request_id: UUID) -> Optional[ServiceRequest]:
        pass

    @abstractmethod
    async def list_for_hotel(self, hotel_id: UUID, status: Optional[RequestStatus] = None) -> List[ServiceRequest]:
        pass

    @abstractmethod
    async def list_for_room(self, hotel_id: UUID, room_id: UUID) -> List[ServiceRequest]:
        pass

    @abstractmethod
    async def update_if_status(
        self, request_id: UUID, expected: RequestStatus, changes: Dict[str, Any]
    ) -> Optional[ServiceRequest]:
        """Apply ``changes`` only if the stored status is still ``expected``; None otherwise."""
        pass
