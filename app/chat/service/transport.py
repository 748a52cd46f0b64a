# app/chat/service/transport.py
from abc import ABC, abstractmethod
from contextlib import AsyncExitStack
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx
import openai
from openai import AsyncOpenAI

from app.chat.entity.chat import ChatMessage, ChatTransportError
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger("ChatTransport")

RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again in a moment."
UNAVAILABLE_MESSAGE = "Service temporarily unavailable."
INTERRUPTED_MESSAGE = "The connection to the concierge was interrupted."


class ChatStream(ABC):
    """An open model response. Yields the raw response body in arbitrary chunks."""

    @abstractmethod
    def iter_chunks(self) -> AsyncIterator[bytes]:
        pass

    @abstractmethod
    async def aclose(self) -> None:
        pass


class ChatTransport(ABC):
    """Opens streamed chat completions with tool calling enabled."""

    @abstractmethod
    async def open_stream(
        self,
        system_prompt: str,
        history: Sequence[ChatMessage],
        tools: List[Dict[str, Any]],
    ) -> ChatStream:
        """Raises ChatTransportError when the stream cannot be opened."""
        pass

    def is_enabled(self) -> bool:
        return True


def _retry_after(response: Optional[httpx.Response]) -> Optional[float]:
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class OpenAIChatStream(ChatStream):
    def __init__(self, response, exit_stack: AsyncExitStack):
        self._response = response
        self._exit_stack = exit_stack

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.iter_bytes():
                yield chunk
        except (httpx.HTTPError, openai.APIError) as e:
            logger.error(f"Model stream broke while reading: {e}")
            raise ChatTransportError(INTERRUPTED_MESSAGE, retryable=False, status_code=502) from e

    async def aclose(self) -> None:
        await self._exit_stack.aclose()


class OpenAIChatTransport(ChatTransport):
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.OPENAI_MODEL
        self.max_tokens = max_tokens or settings.CHAT_MAX_TOKENS
        self.temperature = settings.CHAT_TEMPERATURE if temperature is None else temperature
        self.client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=base_url or settings.OPENAI_BASE_URL,
            timeout=settings.REQUEST_TIMEOUT_MS / 1000,
            max_retries=settings.OPENAI_MAX_RETRIES,
        ) if self.api_key else None
        self._enabled = bool(self.api_key)

    def is_enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def _build_messages(system_prompt: str, history: Sequence[ChatMessage]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": system_prompt}]
        for message in history:
            role = getattr(message.role, "value", message.role)
            messages.append({"role": role, "content": message.content})
        return messages

    async def open_stream(
        self,
        system_prompt: str,
        history: Sequence[ChatMessage],
        tools: List[Dict[str, Any]],
    ) -> ChatStream:
        if not self.is_enabled():
            logger.error("OpenAI transport disabled: missing API key")
            raise ChatTransportError(UNAVAILABLE_MESSAGE, retryable=False, status_code=503)

        exit_stack = AsyncExitStack()
        try:
            response = await exit_stack.enter_async_context(
                self.client.chat.completions.with_streaming_response.create(
                    model=self.model,
                    messages=self._build_messages(system_prompt, history),
                    tools=tools,
                    tool_choice="auto",
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                    stream=True,
                )
            )
        except openai.RateLimitError as e:
            await exit_stack.aclose()
            retry_after = _retry_after(e.response)
            logger.warning(f"Model provider rate limited the request (retry_after={retry_after})")
            raise ChatTransportError(
                RATE_LIMITED_MESSAGE, retryable=True, status_code=429, retry_after=retry_after
            ) from e
        except openai.APIStatusError as e:
            await exit_stack.aclose()
            logger.error(f"Model provider refused the stream: status={e.status_code} retryable=False")
            raise ChatTransportError(UNAVAILABLE_MESSAGE, retryable=False, status_code=e.status_code) from e
        except openai.APIConnectionError as e:
            await exit_stack.aclose()
            logger.error(f"Could not reach model provider: {e}")
            raise ChatTransportError(UNAVAILABLE_MESSAGE, retryable=False, status_code=503) from e

        return OpenAIChatStream(response, exit_stack)
