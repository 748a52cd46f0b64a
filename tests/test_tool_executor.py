from datetime import datetime, timezone

import pytest

from app.chat.entity.chat import ToolContext, ToolInvocation, ToolValidationError
from app.chat.service.tool_executor import ToolExecutor, tool_failure_message
from app.chat.service.tool_registry import (
    ADD_TO_ITINERARY,
    CREATE_SERVICE_REQUEST,
    openai_tools,
    parse_arguments,
)
from app.hotel.service.hotel_service import HotelService
from app.itinerary.entity.itinerary import ItineraryCategory
from app.service_request.entity.service_request import RequestStatus
from app.service_request.service.request_service import RequestService
from fakes import (
    FIXED_NOW,
    HOTEL_ID,
    OTHER_HOTEL_ID,
    ROOM_ID,
    SESSION_ID,
    FailingServiceRequestRepository,
    FlakyHotelRepository,
)


def context(language="en", hotel_id=HOTEL_ID):
    return ToolContext(session_id=SESSION_ID, hotel_id=hotel_id, room_id=ROOM_ID, guest_language=language)


class TestRegistry:
    def test_declares_both_tools(self):
        names = [tool["function"]["name"] for tool in openai_tools()]
        assert names == [CREATE_SERVICE_REQUEST, ADD_TO_ITINERARY]

    def test_declarations_are_copies(self):
        first = openai_tools()
        first[0]["function"]["parameters"]["properties"].clear()
        assert openai_tools()[0]["function"]["parameters"]["properties"]

    def test_unknown_tool(self):
        with pytest.raises(ToolValidationError, match="Unknown tool"):
            parse_arguments("order_pizza", {})

    def test_non_object_arguments(self):
        with pytest.raises(ToolValidationError, match="Invalid arguments"):
            parse_arguments(CREATE_SERVICE_REQUEST, ["Extra Towels"])

    def test_missing_required_field(self):
        with pytest.raises(ToolValidationError, match="Missing required field: requestType"):
            parse_arguments(CREATE_SERVICE_REQUEST, {"details": "two"})

    def test_strings_are_sanitized_and_capped(self):
        args = parse_arguments(CREATE_SERVICE_REQUEST, {"requestType": "  <b>Towels</b> ", "details": "x" * 900})
        assert args.request_type == "bTowels/b"
        assert len(args.details) == 500

    @pytest.mark.parametrize("raw, expected", [
        ("festival", ItineraryCategory.OTHER),
        ("Restaurant", ItineraryCategory.RESTAURANT),
        (None, ItineraryCategory.OTHER),
    ])
    def test_category_is_coerced(self, raw, expected):
        args = parse_arguments(ADD_TO_ITINERARY, {"title": "Fado night", "category": raw})
        assert args.category == expected

    def test_naive_times_are_utc_and_blank_times_missing(self):
        args = parse_arguments(ADD_TO_ITINERARY, {"title": "Dinner", "startTime": "2025-03-14T20:00:00", "endTime": " "})
        assert args.start_time == datetime(2025, 3, 14, 20, tzinfo=timezone.utc)
        assert args.end_time is None


class TestServiceRequestTool:
    async def test_creates_one_pending_request_with_canonical_name(self, executor, request_repo):
        result = await executor.execute_tool(
            CREATE_SERVICE_REQUEST, {"requestType": "extra towels", "details": "two"}, context()
        )
        assert result.success
        assert result.message == (
            "✅ Done! Your Extra Towels request has been received. Our staff will attend to it shortly."
        )
        [stored] = request_repo.rows.values()
        assert stored.request_type == "Extra Towels"
        assert stored.status == RequestStatus.PENDING
        assert stored.room_id == ROOM_ID
        assert stored.service_type_id is not None
        assert result.data["id"] == str(stored.id)

    async def test_portuguese_guest_sees_portuguese_name(self, executor, request_repo):
        result = await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Toalhas Extras"}, context("pt-BR"))
        assert result.message.startswith("✅ Pronto! Seu pedido de Toalhas Extras")
        [stored] = request_repo.rows.values()
        assert stored.request_type == "Extra Towels"
        assert stored.guest_language == "pt"

    async def test_spanish_template(self, executor):
        result = await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Late Checkout"}, context("es"))
        assert result.message.startswith("✅ ¡Listo!")

    async def test_unsupported_language_falls_back_to_english(self, executor):
        result = await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Late Checkout"}, context("ja"))
        assert result.message.startswith("✅ Done!")

    async def test_identical_calls_each_write_a_row(self, executor, request_repo):
        for _ in range(2):
            await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Late Checkout"}, context())
        assert request_repo.creates == 2

    async def test_publishes_created_event(self, executor, fake_redis):
        await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Late Checkout"}, context())
        [(channel, message)] = fake_redis.published
        assert channel == f"service_requests:{HOTEL_ID}"
        assert message["type"] == "created"

    async def test_validation_failure_writes_nothing(self, executor, request_repo):
        result = await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "   "}, context())
        assert not result.success
        assert result.message == "Invalid value for requestType"
        assert request_repo.creates == 0

    async def test_unknown_hotel(self, executor, request_repo):
        result = await executor.execute_tool(
            CREATE_SERVICE_REQUEST, {"requestType": "Late Checkout"}, context(hotel_id=OTHER_HOTEL_ID)
        )
        assert (result.success, result.message) == (False, "Hotel not found")
        assert request_repo.creates == 0

    async def test_write_failure_is_reported(self, hotel_service, itinerary_service, publisher):
        failing = RequestService(FailingServiceRequestRepository(), publisher)
        executor = ToolExecutor(hotel_service, failing, itinerary_service, clock=lambda: FIXED_NOW)
        result = await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Late Checkout"}, context())
        assert (result.success, result.message) == (False, "Failed to create service request")

    async def test_unexpected_error_becomes_a_failed_result(self, request_service, itinerary_service, request_repo):
        hotels = HotelService(FlakyHotelRepository(healthy_reads=0), clock=lambda: FIXED_NOW)
        executor = ToolExecutor(hotels, request_service, itinerary_service, clock=lambda: FIXED_NOW)
        result = await executor.execute_tool(CREATE_SERVICE_REQUEST, {"requestType": "Extra Towels"}, context())
        assert (result.success, result.message, result.data) == (False, "Failed to execute tool", None)
        assert request_repo.rows == {}

    async def test_unknown_tool_result(self, executor):
        result = await executor.execute(ToolInvocation(index=0, name="book_spa", arguments={}), context())
        assert (result.success, result.message) == (False, "Unknown tool")


class TestItineraryTool:
    async def test_adds_item_and_reports_date_and_time(self, executor, itinerary_repo):
        result = await executor.execute_tool(
            ADD_TO_ITINERARY,
            {"title": "Sunset at Miradouro", "category": "festival", "startTime": "2025-03-15T18:30:00Z"},
            context(),
        )
        assert result.success
        assert result.message == '📅 "Sunset at Miradouro" has been added to your itinerary for 2025-03-15 at 18:30.'
        [item] = itinerary_repo.rows.values()
        assert item.category == ItineraryCategory.OTHER
        assert item.session_id == SESSION_ID

    async def test_missing_start_defaults_to_next_full_hour(self, executor, itinerary_repo):
        await executor.execute_tool(ADD_TO_ITINERARY, {"title": "Coffee"}, context())
        [item] = itinerary_repo.rows.values()
        assert item.start_time == datetime(2025, 3, 14, 10, 0, tzinfo=timezone.utc)

    async def test_end_before_start_is_rejected(self, executor, itinerary_repo):
        result = await executor.execute_tool(
            ADD_TO_ITINERARY,
            {"title": "Tour", "startTime": "2025-03-15T10:00:00Z", "endTime": "2025-03-15T09:00:00Z"},
            context(),
        )
        assert not result.success
        assert itinerary_repo.rows == {}

    async def test_portuguese_template(self, executor):
        result = await executor.execute_tool(
            ADD_TO_ITINERARY, {"title": "Jantar", "startTime": "2025-03-15T20:00:00Z"}, context("pt")
        )
        assert result.message == '📅 "Jantar" foi adicionado ao seu roteiro para 2025-03-15 às 20:00.'


@pytest.mark.parametrize("language, prefix", [("en", "Sorry"), ("pt", "Desculpe"), ("es", "Lo siento"), ("de", "Sorry")])
def test_failure_message_is_localized(language, prefix):
    assert tool_failure_message(language).startswith(prefix)
