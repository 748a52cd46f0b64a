# app/chat/service/tool_executor.py
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional

from app.chat.entity.chat import ToolContext, ToolInvocation, ToolResult, ToolValidationError, normalize_language
from app.chat.service.tool_registry import (
    ADD_TO_ITINERARY,
    CREATE_SERVICE_REQUEST,
    AddToItineraryArgs,
    CreateServiceRequestArgs,
    parse_arguments,
)
from app.core.logger import get_logger
from app.hotel.entity.hotel import HotelNotFoundError
from app.hotel.service.hotel_service import HotelService
from app.itinerary.entity.itinerary import ItineraryItem, next_full_hour
from app.itinerary.service.itinerary_service import ItineraryService
from app.service_request.entity.service_request import NewServiceRequest
from app.service_request.service.request_service import RequestService

logger = get_logger("ToolExecutor")

SERVICE_REQUEST_TEMPLATES = {
    "en": "✅ Done! Your {name} request has been received. Our staff will attend to it shortly.",
    "pt": "✅ Pronto! Seu pedido de {name} foi recebido. Nossa equipe irá atendê-lo em breve.",
    "es": "✅ ¡Listo! Tu solicitud de {name} ha sido recibida. Nuestro personal la atenderá en breve.",
}

ITINERARY_TEMPLATES = {
    "en": '📅 "{title}" has been added to your itinerary for {date} at {time}.',
    "pt": '📅 "{title}" foi adicionado ao seu roteiro para {date} às {time}.',
    "es": '📅 "{title}" se ha añadido a tu itinerario para el {date} a las {time}.',
}

FAILURE_TEMPLATES = {
    "en": "Sorry, I couldn't complete that request. Please try again or contact the front desk.",
    "pt": "Desculpe, não consegui concluir esse pedido. Tente novamente ou fale com a recepção.",
    "es": "Lo siento, no pude completar esa solicitud. Inténtalo de nuevo o contacta con la recepción.",
}


def _template(templates: Dict[str, str], language: Optional[str]) -> str:
    return templates.get(normalize_language(language), templates["en"])


def tool_failure_message(language: Optional[str]) -> str:
    """Apology shown to the guest in place of a failed tool result."""
    return _template(FAILURE_TEMPLATES, language)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ToolExecutor:
    """
    Runs validated tool calls. The same instance serves calls coming out of a
    chat stream and direct calls from the guest UI.

    Arguments are fully validated before anything is written, and a
    successful call writes exactly one row. Identical calls are not
    de-duplicated.
    """

    def __init__(
        self,
        hotel_service: HotelService,
        request_service: RequestService,
        itinerary_service: ItineraryService,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.hotel_service = hotel_service
        self.request_service = request_service
        self.itinerary_service = itinerary_service
        self.clock = clock
        self._handlers: Dict[str, Callable[..., Awaitable[ToolResult]]] = {
            CREATE_SERVICE_REQUEST: self._create_service_request,
            ADD_TO_ITINERARY: self._add_to_itinerary,
        }

    async def execute(self, invocation: ToolInvocation, context: ToolContext) -> ToolResult:
        return await self.execute_tool(invocation.name, invocation.arguments, context)

    async def execute_tool(self, tool_name: str, arguments, context: ToolContext) -> ToolResult:
        try:
            parsed = parse_arguments(tool_name, arguments)
        except ToolValidationError as e:
            logger.info(f"Tool {tool_name!r} rejected: {e.message}")
            return ToolResult(success=False, message=e.message)

        try:
            result = await self._handlers[tool_name](parsed, context)
        except Exception as e:
            logger.error(f"Tool {tool_name!r} failed for session {context.session_id}: {e}")
            return ToolResult(success=False, message="Failed to execute tool")
        logger.info(f"Executed tool={tool_name} success={result.success} session={context.session_id}")
        return result

    async def _create_service_request(self, args: CreateServiceRequestArgs, context: ToolContext) -> ToolResult:
        try:
            hotel_context = await self.hotel_service.get_chat_context(context.hotel_id)
        except HotelNotFoundError:
            return ToolResult(success=False, message="Hotel not found")

        service_type = hotel_context.resolve_service_type(args.request_type)
        request_type = service_type.name if service_type else args.request_type
        display_name = service_type.display_name(normalize_language(context.guest_language)) if service_type else args.request_type

        try:
            request = await self.request_service.create_request(NewServiceRequest(
                hotel_id=context.hotel_id,
                room_id=context.room_id,
                service_type_id=service_type.id if service_type else None,
                request_type=request_type,
                details=args.details,
                guest_language=normalize_language(context.guest_language),
            ))
        except Exception as e:
            logger.error(f"Error creating service request: {e}")
            return ToolResult(success=False, message="Failed to create service request")

        return ToolResult(
            success=True,
            message=_template(SERVICE_REQUEST_TEMPLATES, context.guest_language).format(name=display_name),
            data=request.model_dump(mode="json"),
        )

    async def _add_to_itinerary(self, args: AddToItineraryArgs, context: ToolContext) -> ToolResult:
        start_time = args.start_time or next_full_hour(self.clock())
        if args.end_time is not None and args.end_time < start_time:
            return ToolResult(success=False, message="endTime must not be before startTime")

        try:
            item = await self.itinerary_service.add_item(ItineraryItem(
                session_id=context.session_id,
                hotel_id=context.hotel_id,
                title=args.title,
                description=args.description,
                location=args.location,
                category=args.category,
                start_time=start_time,
                end_time=args.end_time,
            ))
        except Exception as e:
            logger.error(f"Error creating itinerary item: {e}")
            return ToolResult(success=False, message="Failed to add to itinerary")

        message = _template(ITINERARY_TEMPLATES, context.guest_language).format(
            title=item.title,
            date=item.start_time.strftime("%Y-%m-%d"),
            time=item.start_time.strftime("%H:%M"),
        )
        return ToolResult(success=True, message=message, data=item.model_dump(mode="json"))
