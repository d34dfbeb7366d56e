"""Thin async wrapper around the OpenAI chat-completion API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from openai import AsyncOpenAI, OpenAIError

from deep_researcher.config import DEFAULT_CHAT_MODEL, AppSettings
from deep_researcher.exceptions import ChatError
from deep_researcher.telemetry.logger import Logger

logger = Logger("chat_model")

ChatMessage = Union[Tuple[str, str], Mapping[str, str]]

_ROLE_ALIASES = {"human": "user", "ai": "assistant"}


@dataclass(frozen=True)
class ChatCompletionResult:
    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


def normalize_messages(messages: Sequence[ChatMessage]) -> List[Dict[str, str]]:
    """Convert ``(role, content)`` pairs or role dicts into API message dicts."""

    normalized = []
    for message in messages:
        if isinstance(message, Mapping):
            role, content = message["role"], message["content"]
        else:
            role, content = message
        normalized.append({"role": _ROLE_ALIASES.get(role, role), "content": content})
    return normalized


class ChatModel:
    """Chat-completion client with a fixed model name and temperature.

    The underlying ``AsyncOpenAI`` client is created on first use, so a
    missing credential is reported when a call is made rather than at
    construction.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_CHAT_MODEL,
        temperature: float = 0.0,
        api_key: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.model_name = model_name
        self.temperature = temperature
        self.api_key = api_key
        self._client = client

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "ChatModel":
        return cls(
            model_name=settings.chat.model_name,
            temperature=settings.chat.temperature,
            api_key=settings.openai_api_key,
        )

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(self, messages: Sequence[ChatMessage]) -> ChatCompletionResult:
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                temperature=self.temperature,
                messages=normalize_messages(messages),
            )
        except OpenAIError as exc:
            raise ChatError(f"Chat completion failed: {exc}") from exc

        if not getattr(response, "choices", None):
            raise ChatError("Chat completion returned no choices")

        usage = getattr(response, "usage", None)
        result = ChatCompletionResult(
            content=response.choices[0].message.content or "",
            model=getattr(response, "model", None) or self.model_name,
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )
        logger.debug(
            "Chat completion received",
            {
                "model": result.model,
                "prompt_tokens": result.prompt_tokens,
                "completion_tokens": result.completion_tokens,
            },
        )
        return result

    async def invoke(self, messages: Sequence[ChatMessage]) -> str:
        result = await self.generate(messages)
        return result.content
