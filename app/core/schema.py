"""Registers every ORM model on the shared declarative ``Base``."""

from pkg.db_util.sql_alchemy.declarative_base import Base

# Imported for their side effect of adding tables to Base.metadata
from app.hotel.repository.sql_schema import hotel as _hotel  # noqa: F401
from app.chat.repository.sql_schema import chat as _chat  # noqa: F401
from app.service_request.repository.sql_schema import service_request as _service_request  # noqa: F401
from app.itinerary.repository.sql_schema import itinerary as _itinerary  # noqa: F401

# Tables owned by the concierge core; the rest are read from collaborators
CORE_TABLES = ("chat_messages", "itinerary_items", "service_requests")

metadata = Base.metadata
