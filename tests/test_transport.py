from types import SimpleNamespace

import httpx
import openai
import pytest

from app.chat.entity.chat import ChatMessage, ChatTransportError, MessageRole
from app.chat.service.transport import (
    INTERRUPTED_MESSAGE,
    RATE_LIMITED_MESSAGE,
    UNAVAILABLE_MESSAGE,
    OpenAIChatTransport,
)
from fakes import SESSION_ID

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def provider_response(status_code, headers=None):
    return httpx.Response(status_code, request=REQUEST, headers=headers or {})


class FakeStreamingResponse:
    def __init__(self, chunks, fail_with=None):
        self.chunks = chunks
        self.fail_with = fail_with

    async def iter_bytes(self):
        for chunk in self.chunks:
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with


class FakeStreamContext:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.exited = False

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self.response

    async def __aexit__(self, *exc):
        self.exited = True
        return False


def transport_with(context):
    transport = OpenAIChatTransport(api_key="sk-test", model="gpt-test")
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return context

    transport.client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(with_streaming_response=SimpleNamespace(create=create)))
    )
    return transport, calls


HISTORY = [ChatMessage(session_id=SESSION_ID, role=MessageRole.USER, content="Hi")]


async def test_opens_a_streamed_completion_with_tools():
    context = FakeStreamContext(FakeStreamingResponse([b"data: ", b"[DONE]\n\n"]))
    transport, calls = transport_with(context)

    stream = await transport.open_stream("be nice", HISTORY, [{"type": "function"}])
    chunks = [chunk async for chunk in stream.iter_chunks()]
    await stream.aclose()

    assert chunks == [b"data: ", b"[DONE]\n\n"]
    assert context.exited
    [call] = calls
    assert call["stream"] is True
    assert call["model"] == "gpt-test"
    assert call["tool_choice"] == "auto"
    assert call["messages"] == [{"role": "system", "content": "be nice"}, {"role": "user", "content": "Hi"}]


async def test_rate_limit_is_retryable():
    error = openai.RateLimitError(
        "slow down", response=provider_response(429, {"retry-after": "3"}), body=None
    )
    transport, _ = transport_with(FakeStreamContext(error=error))
    with pytest.raises(ChatTransportError) as exc:
        await transport.open_stream("p", HISTORY, [])
    assert exc.value.retryable
    assert exc.value.status_code == 429
    assert exc.value.retry_after == 3.0
    assert exc.value.message == RATE_LIMITED_MESSAGE


@pytest.mark.parametrize("status_code", [401, 402, 500])
async def test_other_provider_statuses_are_fatal(status_code):
    error = openai.APIStatusError("nope", response=provider_response(status_code), body=None)
    transport, _ = transport_with(FakeStreamContext(error=error))
    with pytest.raises(ChatTransportError) as exc:
        await transport.open_stream("p", HISTORY, [])
    assert not exc.value.retryable
    assert exc.value.message == UNAVAILABLE_MESSAGE
    assert exc.value.to_dict() == {"message": UNAVAILABLE_MESSAGE, "retryable": False}


async def test_unreachable_provider_is_503():
    transport, _ = transport_with(FakeStreamContext(error=openai.APIConnectionError(request=REQUEST)))
    with pytest.raises(ChatTransportError) as exc:
        await transport.open_stream("p", HISTORY, [])
    assert exc.value.status_code == 503


async def test_read_failure_becomes_transport_error():
    response = FakeStreamingResponse([b"data: {}\n\n"], fail_with=httpx.ReadError("reset", request=REQUEST))
    transport, _ = transport_with(FakeStreamContext(response))
    stream = await transport.open_stream("p", HISTORY, [])
    received = []
    with pytest.raises(ChatTransportError) as exc:
        async for chunk in stream.iter_chunks():
            received.append(chunk)
    assert received == [b"data: {}\n\n"]
    assert exc.value.message == INTERRUPTED_MESSAGE


async def test_without_api_key_the_transport_is_disabled():
    transport = OpenAIChatTransport(api_key="")
    assert not transport.is_enabled()
    with pytest.raises(ChatTransportError) as exc:
        await transport.open_stream("p", HISTORY, [])
    assert exc.value.status_code == 503
