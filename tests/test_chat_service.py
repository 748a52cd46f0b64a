import json
import uuid
from datetime import timedelta

import pytest

from app.chat.entity.chat import ChatMessage, ChatTransportError, MessageRole, ToolResult
from app.chat.service.chat_service import ConciergeChatService
from app.chat.service.tool_executor import ToolExecutor
from app.chat.service.tool_registry import CREATE_SERVICE_REQUEST
from app.hotel.entity.hotel import SessionAuthorizationError
from app.hotel.service.hotel_service import HotelService
from app.service_request.entity.service_request import RequestStatus
from fakes import (
    DONE,
    FIXED_NOW,
    HOTEL_ID,
    OTHER_HOTEL_ID,
    SESSION_ID,
    ExplodingExecutor,
    FakeTransport,
    FlakyHotelRepository,
    RecordingExecutor,
    content_chunk,
    finish_chunk,
    make_session,
    sse,
    tool_chunk,
)


def user(text):
    return ChatMessage(session_id=SESSION_ID, role=MessageRole.USER, content=text)


async def run_turn(service, text="Hi", language="en", hotel_id=HOTEL_ID):
    turn = await service.open_turn(SESSION_ID, hotel_id, "204", language, [user(text)])
    return [wire async for wire in turn.events()]


def payloads(wires):
    out = []
    for wire in wires:
        assert wire.endswith("\n\n")
        line = wire[:-2]
        if line.startswith("data: ") and line != "data: [DONE]":
            out.append(json.loads(line[len("data: "):]))
    return out


def content_of(wires):
    return "".join(
        p["choices"][0]["delta"].get("content") or ""
        for p in payloads(wires) if "choices" in p
    )


TOWELS_STREAM = [
    sse(content_chunk("Of course! ")),
    sse(tool_chunk(0, '{"requestType":', name=CREATE_SERVICE_REQUEST, call_id="call_1")),
    sse(tool_chunk(0, '"Extra Towels", "details":')),
    sse(tool_chunk(0, '"two bath towels"}')),
    sse(finish_chunk("tool_calls")),
    DONE,
]


async def test_service_request_through_a_streamed_turn(make_chat_service, request_repo, chat_repo):
    transport = FakeTransport(TOWELS_STREAM)
    wires = await run_turn(make_chat_service(transport), "Can I get extra towels?")

    [stored] = request_repo.rows.values()
    assert stored.request_type == "Extra Towels"
    assert stored.details == "two bath towels"
    assert stored.status == RequestStatus.PENDING

    confirmation = "✅ Done! Your Extra Towels request has been received. Our staff will attend to it shortly."
    assert content_of(wires) == f"Of course! \n\n{confirmation}"
    assert wires[-1] == "data: [DONE]\n\n"
    assert sum(1 for w in wires if w == "data: [DONE]\n\n") == 1

    roles = [(m.role, m.content) for m in chat_repo.messages]
    assert roles == [
        (MessageRole.USER, "Can I get extra towels?"),
        (MessageRole.ASSISTANT, f"Of course! \n\n{confirmation}"),
    ]
    assert transport.streams[0].closed


async def test_tool_call_deltas_are_never_forwarded(make_chat_service):
    wires = await run_turn(make_chat_service(FakeTransport(TOWELS_STREAM)))
    for payload in payloads(wires):
        if "choices" in payload:
            assert "tool_calls" not in payload["choices"][0]["delta"]


async def test_prompt_and_tools_reach_the_transport(make_chat_service):
    transport = FakeTransport([sse(content_chunk("Hello")), DONE])
    await run_turn(make_chat_service(transport), language="pt")

    [call] = transport.calls
    assert "Portuguese" in call["system_prompt"]
    assert '"Toalhas Extras"' in call["system_prompt"]
    assert "TODAY: 2025-03-14" in call["system_prompt"]
    assert [t["function"]["name"] for t in call["tools"]] == ["create_service_request", "add_to_itinerary"]
    assert call["history"][-1].content == "Hi"


async def test_language_defaults_to_the_session(make_chat_service, hotel_repo):
    hotel_repo.sessions[SESSION_ID] = make_session(guest_language="es")
    transport = FakeTransport([DONE])
    service = make_chat_service(transport)
    turn = await service.open_turn(SESSION_ID, HOTEL_ID, None, None, [user("Hola")])
    [_ async for _ in turn.events()]
    assert "Spanish" in transport.calls[0]["system_prompt"]
    assert "Room: 204" in transport.calls[0]["system_prompt"]


async def test_failed_tool_becomes_a_localized_apology(make_chat_service):
    executor = RecordingExecutor({CREATE_SERVICE_REQUEST: ToolResult(success=False, message="Hotel not found")})
    service = make_chat_service(FakeTransport(TOWELS_STREAM), executor)
    wires = await run_turn(service, language="pt")
    assert content_of(wires).endswith("Desculpe, não consegui concluir esse pedido. Tente novamente ou fale com a recepção.")
    assert "Hotel not found" not in "".join(wires)


async def test_multiple_tool_calls_run_in_index_order(make_chat_service):
    executor = RecordingExecutor()
    chunks = [
        sse(tool_chunk(1, '{"title":"Beach"}', name="add_to_itinerary")),
        sse(tool_chunk(0, '{"requestType":"Late Checkout"}', name=CREATE_SERVICE_REQUEST)),
        sse(finish_chunk("tool_calls")),
        DONE,
    ]
    wires = await run_turn(make_chat_service(FakeTransport(chunks), executor))
    assert [inv.index for inv, _ in executor.calls] == [0, 1]
    assert content_of(wires) == "ok\n\nok"


async def test_tool_context_carries_session_scope(make_chat_service):
    executor = RecordingExecutor()
    await run_turn(make_chat_service(FakeTransport(TOWELS_STREAM), executor), language="pt-BR")
    [(_, context)] = executor.calls
    assert context.session_id == SESSION_ID
    assert context.hotel_id == HOTEL_ID
    assert context.guest_language == "pt"


async def test_stream_failure_mid_turn_sends_error_then_done(make_chat_service, chat_repo):
    error = ChatTransportError("The connection to the concierge was interrupted.", status_code=502)
    transport = FakeTransport([sse(content_chunk("Let me check"))], fail_with=error)
    wires = await run_turn(make_chat_service(transport))

    assert wires[-1] == "data: [DONE]\n\n"
    assert json.loads(wires[-2][len("data: "):-2]) == {
        "error": {"message": "The connection to the concierge was interrupted.", "retryable": False}
    }
    assert transport.streams[0].closed
    assert chat_repo.messages[-1].content == "Let me check"


async def test_database_failure_during_tool_is_an_apology(chat_repo, request_service, itinerary_service, request_repo):
    hotels = HotelService(FlakyHotelRepository(healthy_reads=1), clock=lambda: FIXED_NOW)
    executor = ToolExecutor(hotels, request_service, itinerary_service, clock=lambda: FIXED_NOW)
    transport = FakeTransport(TOWELS_STREAM)
    service = ConciergeChatService(hotels, chat_repo, transport, executor, clock=lambda: FIXED_NOW)

    wires = await run_turn(service, "Can I get extra towels?")

    apology = "Sorry, I couldn't complete that request. Please try again or contact the front desk."
    assert content_of(wires) == f"Of course! \n\n{apology}"
    assert "database went away" not in "".join(wires)
    assert wires[-1] == "data: [DONE]\n\n"
    assert request_repo.rows == {}
    assert chat_repo.messages[-1].content == f"Of course! \n\n{apology}"
    assert transport.streams[0].closed


async def test_unexpected_turn_error_sends_generic_error_then_done(make_chat_service, chat_repo):
    transport = FakeTransport(TOWELS_STREAM)
    wires = await run_turn(make_chat_service(transport, ExplodingExecutor()))

    assert wires[-1] == "data: [DONE]\n\n"
    assert json.loads(wires[-2][len("data: "):-2]) == {
        "error": {"message": "Something went wrong while answering. Please try again.", "retryable": False}
    }
    assert "executor crashed" not in "".join(wires)
    assert chat_repo.messages[-1].role == MessageRole.ASSISTANT
    assert chat_repo.messages[-1].content == "Of course! "
    assert transport.streams[0].closed


async def test_aborted_turn_runs_no_tools_and_closes_upstream(make_chat_service):
    executor = RecordingExecutor()
    transport = FakeTransport(TOWELS_STREAM)
    turn = await make_chat_service(transport, executor).open_turn(SESSION_ID, HOTEL_ID, "204", "en", [user("Towels?")])

    events = turn.events()
    first = await events.__anext__()
    await events.aclose()

    assert content_of([first]) == "Of course! "
    assert executor.calls == []
    assert transport.streams[0].closed
    assert transport.streams[0].consumed == 1


async def test_stream_without_done_is_closed_out(make_chat_service):
    transport = FakeTransport([sse(content_chunk("Partial"))])
    wires = await run_turn(make_chat_service(transport))
    assert wires[-1] == "data: [DONE]\n\n"


async def test_lines_after_done_are_not_read(make_chat_service):
    transport = FakeTransport([sse(content_chunk("a")), DONE, sse(content_chunk("b"))])
    wires = await run_turn(make_chat_service(transport))
    assert content_of(wires) == "a"
    assert transport.streams[0].consumed == 2


async def test_empty_reply_is_not_persisted(make_chat_service, chat_repo):
    await run_turn(make_chat_service(FakeTransport([DONE])))
    assert [m.role for m in chat_repo.messages] == [MessageRole.USER]


async def test_open_error_propagates_before_streaming(make_chat_service):
    error = ChatTransportError("Rate limit exceeded. Please try again in a moment.", retryable=True, status_code=429)
    service = make_chat_service(FakeTransport(open_error=error))
    with pytest.raises(ChatTransportError) as exc:
        await service.open_turn(SESSION_ID, HOTEL_ID, "204", "en", [user("Hi")])
    assert exc.value.retryable


async def test_session_from_another_hotel_is_rejected(make_chat_service, chat_repo):
    transport = FakeTransport([DONE])
    with pytest.raises(SessionAuthorizationError):
        await make_chat_service(transport).open_turn(SESSION_ID, OTHER_HOTEL_ID, "204", "en", [user("Hi")])
    assert transport.calls == []
    assert chat_repo.messages == []


async def test_expired_session_is_rejected(make_chat_service, hotel_repo):
    hotel_repo.sessions[SESSION_ID] = make_session(expires_at=FIXED_NOW - timedelta(seconds=1))
    with pytest.raises(SessionAuthorizationError):
        await make_chat_service(FakeTransport([DONE])).open_turn(SESSION_ID, HOTEL_ID, "204", "en", [user("Hi")])


async def test_unknown_session_is_rejected(make_chat_service):
    with pytest.raises(SessionAuthorizationError):
        await make_chat_service(FakeTransport([DONE])).get_history(uuid.uuid4(), HOTEL_ID)


async def test_history_returns_stored_messages(make_chat_service):
    service = make_chat_service(FakeTransport([sse(content_chunk("Hello there")), DONE]))
    await run_turn(service, "Hi")
    history = await service.get_history(SESSION_ID, HOTEL_ID)
    assert [m.content for m in history] == ["Hi", "Hello there"]
