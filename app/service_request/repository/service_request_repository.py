# app/service_request/repository/service_request_repository.py

from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.future import select

from app.service_request.entity.service_request import NewServiceRequest, RequestStatus, ServiceRequest
from app.service_request.repository.sql_schema.service_request import ServiceRequestModel
from app.service_request.service.service import IServiceRequestRepository
from pkg.db_util.postgres_conn import PostgresConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


def _to_entity(row: ServiceRequestModel) -> ServiceRequest:
    return ServiceRequest(
        id=row.id,
        hotel_id=row.hotel_id,
        room_id=row.room_id,
        service_type_id=row.service_type_id,
        request_type=row.request_type,
        details=row.details,
        status=row.status,
        guest_language=row.guest_language,
        staff_response=row.staff_response,
        resolution=row.resolution,
        guest_accepted=row.guest_accepted,
        responded_at=row.responded_at,
        completed_at=row.completed_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ServiceRequestRepository(IServiceRequestRepository):
    """Postgres storage for service requests."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres
        self.logger = logger

    async def create(self, request: NewServiceRequest) -> ServiceRequest:
        async with self.postgres.get_session() as session:
            row = ServiceRequestModel(
                hotel_id=request.hotel_id,
                room_id=request.room_id,
                service_type_id=request.service_type_id,
                request_type=request.request_type,
                details=request.details,
                status=RequestStatus.PENDING.value,
                guest_language=request.guest_language,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            self.logger.info(f"Service request saved: {row.id}")
            return _to_entity(row)

    async def get(self, request_id: UUID) -> Optional[ServiceRequest]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(ServiceRequestModel).where(ServiceRequestModel.id == request_id)
            )
            row = result.scalar_one_or_none()
            return _to_entity(row) if row else None

    async def list_for_hotel(self, hotel_id: UUID, status: Optional[RequestStatus] = None) -> List[ServiceRequest]:
        async with self.postgres.get_session() as session:
            query = select(ServiceRequestModel).where(ServiceRequestModel.hotel_id == hotel_id)
            if status is not None:
                query = query.where(ServiceRequestModel.status == status.value)
            result = await session.execute(query.order_by(ServiceRequestModel.created_at.desc()))
            return [_to_entity(row) for row in result.scalars().all()]

    async def list_for_room(self, hotel_id: UUID, room_id: UUID) -> List[ServiceRequest]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(ServiceRequestModel)
                .where(ServiceRequestModel.hotel_id == hotel_id, ServiceRequestModel.room_id == room_id)
                .order_by(ServiceRequestModel.created_at.desc())
            )
            return [_to_entity(row) for row in result.scalars().all()]

    async def update_if_status(
        self, request_id: UUID, expected: RequestStatus, changes: Dict[str, Any]
    ) -> Optional[ServiceRequest]:
        values = {key: (value.value if isinstance(value, Enum) else value) for key, value in changes.items()}
        async with self.postgres.get_session() as session:
            result = await session.execute(
                update(ServiceRequestModel)
                .where(
                    ServiceRequestModel.id == request_id,
                    ServiceRequestModel.status == expected.value,
                )
                .values(**values)
                .returning(ServiceRequestModel)
                .execution_options(synchronize_session=False)
            )
            row = result.scalar_one_or_none()
            return _to_entity(row) if row else None
