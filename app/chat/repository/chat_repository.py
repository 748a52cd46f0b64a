# app/chat/repository/chat_repository.py

from typing import List
from uuid import UUID
from sqlalchemy.future import select

from app.chat.entity.chat import ChatMessage
from app.chat.repository.sql_schema.chat import ChatMessageModel
from app.chat.service.service import IChatRepository
from pkg.db_util.postgres_conn import PostgresConnection
from pkg.log.logger import get_logger

logger = get_logger(__name__)


class ChatRepository(IChatRepository):
    """Handles all database interactions for concierge chat messages."""

    def __init__(self, postgres: PostgresConnection):
        self.postgres = postgres
        self.logger = logger

    async def save_message(self, message: ChatMessage) -> ChatMessage:
        """Save a new message under a chat session."""
        async with self.postgres.get_session() as session:
            new_msg = ChatMessageModel(
                session_id=message.session_id,
                role=message.role.value,
                content=message.content,
            )
            session.add(new_msg)
            await session.flush()
            await session.refresh(new_msg)
            self.logger.info(f"Message saved: session={new_msg.session_id} role={new_msg.role}")
            return ChatMessage(
                id=new_msg.id,
                session_id=new_msg.session_id,
                role=new_msg.role,
                content=new_msg.content,
                created_at=new_msg.created_at,
            )

    async def list_messages(self, session_id: UUID) -> List[ChatMessage]:
        async with self.postgres.get_session() as session:
            result = await session.execute(
                select(ChatMessageModel)
                .where(ChatMessageModel.session_id == session_id)
                .order_by(ChatMessageModel.created_at.asc())
            )
            return [
                ChatMessage(id=m.id, session_id=m.session_id, role=m.role, content=m.content, created_at=m.created_at)
                for m in result.scalars().all()
            ]
