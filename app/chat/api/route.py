from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from typing import Optional
from uuid import UUID

from app.auth.api.dto import BaseResponse
from app.chat.api.dto import ChatRequest, ExecuteToolRequest, ToolResultResponse
from app.chat.api.handler import handle_chat_stream, handle_execute_tool, handle_history
from app.chat.service.chat_service import ConciergeChatService
from app.chat.service.tool_executor import ToolExecutor
from app.core.logger import get_logger
from app.hotel.service.hotel_service import HotelService

chat_router = APIRouter(prefix="/chat", tags=["Chat"])
logger = get_logger("ChatRouter")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # for Nginx
}


def get_chat_service(request: Request) -> Optional[ConciergeChatService]:
    """Dependency to get the concierge chat service from app.state."""
    return getattr(request.app.state, "chat_service", None)


def get_hotel_service(request: Request) -> Optional[HotelService]:
    return getattr(request.app.state, "hotel_service", None)


def get_tool_executor(request: Request) -> Optional[ToolExecutor]:
    return getattr(request.app.state, "tool_executor", None)


@chat_router.post("/message")
async def chat_message_api(
    body: ChatRequest,
    chat_service: Optional[ConciergeChatService] = Depends(get_chat_service),
):
    """
    Streaming concierge turn (Server-Sent Events).
    Upstream event lines are forwarded as-is, tool results follow as extra
    content events, and the stream always ends with ``data: [DONE]``.
    """
    events = await handle_chat_stream(body, chat_service)
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)


@chat_router.post("/execute-tool", response_model=ToolResultResponse)
async def execute_tool_api(
    body: ExecuteToolRequest,
    hotel_service: Optional[HotelService] = Depends(get_hotel_service),
    executor: Optional[ToolExecutor] = Depends(get_tool_executor),
):
    """Run a tool directly from the guest UI. Validation failures still answer 200 with success=false."""
    return await handle_execute_tool(body, hotel_service, executor)


@chat_router.get("/history/{session_id}", response_model=BaseResponse)
async def chat_history_api(
    session_id: UUID,
    hotel_id: UUID = Query(..., alias="hotelId"),
    chat_service: Optional[ConciergeChatService] = Depends(get_chat_service),
):
    messages = await handle_history(session_id, hotel_id, chat_service)
    logger.info(f"Retrieved {len(messages)} messages for session_id={session_id}")
    return BaseResponse(
        status=True,
        message="Chat history fetched successfully",
        data=[message.model_dump(mode="json") for message in messages],
    )
