from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from app.chat.entity.chat import ChatMessage


class IChatRepository(ABC):
    @abstractmethod
    async def save_message(self, message: ChatMessage) -> ChatMessage:
        pass

    @abstractmethod
    async def list_messages(self, session_id: UUID) -> List[ChatMessage]:
        """Messages of a session, oldest first."""
        pass
