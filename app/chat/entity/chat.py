# app/chat/entity/chat.py
"""
Entities of a concierge chat turn.

``ChatMessage`` is what gets stored and resent to the model on every turn.
``ToolCallFragment`` only lives while a model response is streaming, and a
``ToolInvocation`` is what a finished fragment becomes once its arguments
have been parsed.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One stored turn of a guest conversation."""
    id: Optional[UUID] = None
    session_id: UUID
    role: MessageRole
    content: str
    created_at: Optional[datetime] = None


@dataclass
class ToolCallFragment:
    """A tool call still being streamed. ``arguments`` is raw, possibly partial JSON."""
    index: int
    id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass(frozen=True)
class ToolInvocation:
    index: int
    name: str
    arguments: Dict[str, Any]
    call_id: str = ""


class ToolResult(BaseModel):
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None


class ToolContext(BaseModel):
    """Who a tool runs on behalf of."""
    session_id: UUID
    hotel_id: UUID
    room_id: Optional[UUID] = None
    guest_language: str = "en"


class ChatTransportError(Exception):
    """
    The language-model stream could not be opened or broke while reading.

    Only rate limiting is retryable; quota, auth and server failures are fatal.
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.status_code = status_code
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "retryable": self.retryable}


class ToolValidationError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


SUPPORTED_LANGUAGES = ("en", "pt", "es", "de", "fr", "it")


def normalize_language(code: Optional[str]) -> str:
    """Reduce a language tag like ``pt-BR`` to a supported base code, else ``en``."""
    if not code:
        return "en"
    base = code.strip().lower().replace("_", "-").split("-")[0]
    return base if base in SUPPORTED_LANGUAGES else "en"


def sanitize_text(value: Any, max_length: int) -> str:
    """Trim, drop angle brackets and cap the length of a guest or model supplied string."""
    if value is None:
        return ""
    text = str(value).replace("<", "").replace(">", "").strip()
    return text[:max_length]

