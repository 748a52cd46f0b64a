from sqlalchemy import (
    Column, String, DateTime, Text, ForeignKey
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
import uuid

from pkg.db_util.sql_alchemy.declarative_base import Base


# Itinerary Items Table
class ItineraryItemModel(Base):
    __tablename__ = "itinerary_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(UUID(as_uuid=True), ForeignKey("chat_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    hotel_id = Column(UUID(as_uuid=True), ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False)
    recommendation_id = Column(
        UUID(as_uuid=True), ForeignKey("local_recommendations.id", ondelete="SET NULL"), nullable=True
    )
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    category = Column(String, nullable=False, default="other")
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
