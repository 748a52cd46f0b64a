from sqlalchemy import (
    Column, String, DateTime, Text, Boolean, ForeignKey
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from pkg.db_util.sql_alchemy.declarative_base import Base


# Service Requests Table
class ServiceRequestModel(Base):
    __tablename__ = "service_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotel_id = Column(UUID(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True, index=True)
    service_type_id = Column(UUID(as_uuid=True), ForeignKey("service_types.id", ondelete="SET NULL"), nullable=True)
    request_type = Column(Text, nullable=False)
    details = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)
    guest_language = Column(String, nullable=False, default="en")
    staff_response = Column(Text, nullable=True)
    resolution = Column(String, nullable=True)
    guest_accepted = Column(Boolean, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
