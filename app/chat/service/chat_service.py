# app/chat/service/chat_service.py
import json
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, List, Optional, Sequence
from uuid import UUID

from app.chat.entity.chat import (
    ChatMessage,
    ChatTransportError,
    MessageRole,
    ToolContext,
    normalize_language,
)
from app.chat.service.prompt_builder import build_system_prompt
from app.chat.service.reassembler import (
    DATA_PREFIX,
    ForwardLine,
    StreamEvent,
    StreamReassembler,
    ToolCallsCompleted,
    content_event_line,
    done_line,
)
from app.chat.service.service import IChatRepository
from app.chat.service.tool_executor import ToolExecutor, tool_failure_message
from app.chat.service.tool_registry import openai_tools
from app.chat.service.transport import ChatStream, ChatTransport
from app.core.logger import get_logger
from app.hotel.service.hotel_service import HotelService

logger = get_logger("ConciergeChat")

TURN_FAILED_MESSAGE = "Something went wrong while answering. Please try again."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _wire(line: str) -> str:
    return f"{line}\n\n"


def error_line(error: ChatTransportError) -> str:
    return f"{DATA_PREFIX} {json.dumps({'error': error.to_dict()})}"


class ChatTurn:
    """
    One streamed model response. Produces the wire text sent to the guest and
    runs tool calls as they complete. Use it once.
    """

    def __init__(
        self,
        stream: ChatStream,
        executor: ToolExecutor,
        chat_repository: IChatRepository,
        tool_context: ToolContext,
    ):
        self.stream = stream
        self.executor = executor
        self.chat_repository = chat_repository
        self.tool_context = tool_context
        self.reassembler = StreamReassembler()

    async def _consume(self, events: Sequence[StreamEvent]) -> List[str]:
        out: List[str] = []
        for event in events:
            if isinstance(event, ForwardLine):
                out.append(_wire(event.line))
            elif isinstance(event, ToolCallsCompleted):
                messages = []
                for invocation in event.invocations:
                    result = await self.executor.execute(invocation, self.tool_context)
                    messages.append(
                        result.message if result.success else tool_failure_message(self.tool_context.guest_language)
                    )
                added = self.reassembler.append_tool_results(messages)
                if added:
                    out.append(_wire(content_event_line(added)))
        return out

    async def _persist_assistant_text(self) -> Optional[ChatMessage]:
        text = self.reassembler.assistant_text
        if not text:
            return None
        try:
            return await self.chat_repository.save_message(ChatMessage(
                session_id=self.tool_context.session_id,
                role=MessageRole.ASSISTANT,
                content=text,
            ))
        except Exception as e:
            logger.error(f"Failed to save assistant message for session {self.tool_context.session_id}: {e}")
            return None

    async def events(self) -> AsyncIterator[str]:
        failure: Optional[ChatTransportError] = None
        try:
            try:
                async for chunk in self.stream.iter_chunks():
                    for wire in await self._consume(self.reassembler.feed(chunk)):
                        yield wire
                    if self.reassembler.ended:
                        break
                if not self.reassembler.ended:
                    for wire in await self._consume(self.reassembler.close()):
                        yield wire
            except ChatTransportError as e:
                logger.error(f"Chat stream failed mid-turn: {e.message} (retryable={e.retryable})")
                failure = e
            except Exception as e:
                logger.exception(f"Unexpected error during chat turn for session {self.tool_context.session_id}: {e}")
                failure = ChatTransportError(TURN_FAILED_MESSAGE, retryable=False, status_code=500)
        finally:
            await self.stream.aclose()

        await self._persist_assistant_text()
        if failure is not None:
            yield _wire(error_line(failure))
        yield _wire(done_line())


class ConciergeChatService:
    def __init__(
        self,
        hotel_service: HotelService,
        chat_repository: IChatRepository,
        transport: ChatTransport,
        executor: ToolExecutor,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.hotel_service = hotel_service
        self.chat_repository = chat_repository
        self.transport = transport
        self.executor = executor
        self.clock = clock

    async def open_turn(
        self,
        session_id: UUID,
        hotel_id: UUID,
        room_number: Optional[str],
        guest_language: Optional[str],
        history: Sequence[ChatMessage],
    ) -> ChatTurn:
        """
        Verify the session, store the guest's latest message and open the model stream.

        Raises SessionAuthorizationError, HotelNotFoundError or
        ChatTransportError before anything has been streamed.
        """
        session = await self.hotel_service.verify_session(session_id, hotel_id)
        context = await self.hotel_service.get_chat_context(hotel_id)
        language = normalize_language(guest_language or session.guest_language)

        if history and history[-1].role == MessageRole.USER:
            await self.chat_repository.save_message(history[-1])

        prompt = build_system_prompt(
            context.hotel,
            language,
            room_number or session.room_number,
            context.service_names(language),
            context.recommendations,
            today=self.clock().date(),
        )
        stream = await self.transport.open_stream(prompt, history, openai_tools())
        tool_context = ToolContext(
            session_id=session_id,
            hotel_id=hotel_id,
            room_id=session.room_id,
            guest_language=language,
        )
        return ChatTurn(stream, self.executor, self.chat_repository, tool_context)

    async def get_history(self, session_id: UUID, hotel_id: UUID) -> List[ChatMessage]:
        await self.hotel_service.verify_session(session_id, hotel_id)
        return await self.chat_repository.list_messages(session_id)
