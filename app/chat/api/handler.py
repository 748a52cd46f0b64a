from typing import AsyncIterator, List, Optional
from uuid import UUID

from fastapi import HTTPException

from app.chat.api.dto import ChatRequest, ExecuteToolRequest, HistoryMessage, ToolResultResponse
from app.chat.entity.chat import ChatMessage, ChatTransportError, MessageRole, ToolContext, normalize_language
from app.chat.service.chat_service import ConciergeChatService
from app.chat.service.tool_executor import ToolExecutor
from app.core.logger import get_logger
from app.hotel.entity.hotel import HotelNotFoundError, SessionAuthorizationError
from app.hotel.service.hotel_service import HotelService

logger = get_logger("ChatHandler")


def _transport_http_error(error: ChatTransportError) -> HTTPException:
    """Map a failed stream open to the response the guest UI expects."""
    if error.retryable:
        headers = {"Retry-After": str(int(error.retry_after))} if error.retry_after else None
        return HTTPException(status_code=429, detail=error.message, headers=headers)
    return HTTPException(status_code=503, detail=error.message)


async def handle_chat_stream(
    body: ChatRequest,
    chat_service: Optional[ConciergeChatService],
) -> AsyncIterator[str]:
    """
    Open the turn before returning the generator so that session, hotel and
    provider failures become ordinary JSON errors instead of a broken stream.
    """
    if not chat_service:
        raise HTTPException(status_code=503, detail="Chat service not available")

    history = [
        ChatMessage(session_id=body.session_id, role=MessageRole(message.role), content=message.content)
        for message in body.messages
    ]
    try:
        turn = await chat_service.open_turn(
            session_id=body.session_id,
            hotel_id=body.hotel_id,
            room_number=body.room_number,
            guest_language=normalize_language(body.guest_language) if body.guest_language else None,
            history=history,
        )
    except SessionAuthorizationError as e:
        raise HTTPException(status_code=403, detail=e.message)
    except HotelNotFoundError:
        raise HTTPException(status_code=404, detail="Hotel not found")
    except ChatTransportError as e:
        raise _transport_http_error(e)

    return turn.events()


async def handle_execute_tool(
    body: ExecuteToolRequest,
    hotel_service: Optional[HotelService],
    executor: Optional[ToolExecutor],
) -> ToolResultResponse:
    if not hotel_service or not executor:
        raise HTTPException(status_code=503, detail="Tool service not available")

    try:
        session = await hotel_service.verify_session(body.session_id, body.hotel_id)
    except SessionAuthorizationError as e:
        raise HTTPException(status_code=403, detail=e.message)

    context = ToolContext(
        session_id=body.session_id,
        hotel_id=body.hotel_id,
        room_id=body.room_id or session.room_id,
        guest_language=normalize_language(body.guest_language or session.guest_language),
    )
    result = await executor.execute_tool(body.tool_name, body.arguments, context)
    return ToolResultResponse(**result.model_dump())


async def handle_history(
    session_id: UUID,
    hotel_id: UUID,
    chat_service: Optional[ConciergeChatService],
) -> List[HistoryMessage]:
    if not chat_service:
        raise HTTPException(status_code=503, detail="Chat service not available")
    try:
        messages = await chat_service.get_history(session_id, hotel_id)
    except SessionAuthorizationError as e:
        raise HTTPException(status_code=403, detail=e.message)

    return [
        HistoryMessage(
            id=str(message.id) if message.id else None,
            role=message.role.value,
            content=message.content,
            created_at=message.created_at,
        )
        for message in messages
    ]
