from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, List, Literal, Optional
from uuid import UUID

from app.chat.entity.chat import sanitize_text
from app.core.config import settings

ROOM_NUMBER_MAX = 20


class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=settings.MAX_MESSAGE_CHARS)


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: UUID = Field(..., alias="sessionId")
    hotel_id: UUID = Field(..., alias="hotelId")
    room_number: Optional[str] = Field(default=None, alias="roomNumber")
    guest_language: Optional[str] = Field(default=None, alias="guestLanguage")
    messages: List[Message] = Field(..., min_length=1, max_length=settings.MAX_HISTORY_MESSAGES)

    @field_validator("room_number", mode="before")
    @classmethod
    def _clean_room_number(cls, value: Any) -> Optional[str]:
        return sanitize_text(value, ROOM_NUMBER_MAX) or None

    @model_validator(mode="after")
    def _last_message_from_guest(self) -> "ChatRequest":
        if self.messages[-1].role != "user":
            raise ValueError("The last message must come from the guest")
        return self


class ExecuteToolRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tool_name: str = Field(..., min_length=1, alias="toolName")
    arguments: Any = None
    session_id: UUID = Field(..., alias="sessionId")
    hotel_id: UUID = Field(..., alias="hotelId")
    room_id: Optional[UUID] = Field(default=None, alias="roomId")
    guest_language: Optional[str] = Field(default=None, alias="guestLanguage")


class ToolResultResponse(BaseModel):
    success: bool
    message: str
    data: Optional[dict] = None


class HistoryMessage(BaseModel):
    id: Optional[str] = None
    role: str
    content: str
    created_at: Optional[datetime] = None
