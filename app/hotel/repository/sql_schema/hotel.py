from sqlalchemy import (
    Column, String, DateTime, Integer, Text, Boolean, ForeignKey, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from pkg.db_util.sql_alchemy.declarative_base import Base


# Hotels Table
class HotelModel(Base):
    __tablename__ = "hotels"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    city = Column(Text, nullable=False)
    country = Column(Text, nullable=False)
    wifi_password = Column(Text, nullable=True)
    breakfast_hours = Column(Text, nullable=True)
    checkout_time = Column(Text, nullable=True, default="12:00")
    whatsapp_number = Column(Text, nullable=False)
    tone_of_voice = Column(String, nullable=False, default="relaxed_resort")
    language = Column(String, nullable=False, default="pt-BR")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


# Rooms Table
class RoomModel(Base):
    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("hotel_id", "room_number"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotel_id = Column(UUID(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    room_number = Column(Text, nullable=False)
    qr_code = Column(Text, nullable=False, unique=True)
    floor = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# Service Types Table
class ServiceTypeModel(Base):
    __tablename__ = "service_types"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotel_id = Column(UUID(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    name_pt = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    icon = Column(Text, nullable=False, default="bell")
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# Local Recommendations Table
class LocalRecommendationModel(Base):
    __tablename__ = "local_recommendations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotel_id = Column(UUID(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, nullable=False)
    address = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# Chat Sessions Table (written by PIN verification, read here)
class ChatSessionModel(Base):
    __tablename__ = "chat_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    hotel_id = Column(UUID(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = Column(UUID(as_uuid=True), ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True)
    guest_language = Column(String, nullable=False, default="en")
    verified_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
