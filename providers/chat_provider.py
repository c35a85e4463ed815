"""
AI Chat Provider Classes

Chat completions are delegated to an OpenAI-compatible endpoint through the
`openai` SDK. The same client talks to OpenAI itself or to Reploy by changing
its base URL. Providers return the model's text untouched; callers decide what
to send, providers only transport it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from core.exceptions import UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

PUBLIC_CHAT_ERROR = "Error processing AI request"
FALLBACK_REPLY = "I apologize, but I could not generate a response."


@dataclass
class ChatCompletion:
    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)


class ChatProvider(ABC):
    """Abstract base class for chat completion backends"""

    @property
    @abstractmethod
    def source_name(self) -> str:
        pass

    @abstractmethod
    async def complete(self, messages: List[Dict[str, str]]) -> ChatCompletion:
        """Single completion for role-tagged messages"""
        pass

    @abstractmethod
    def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Completion text delivered piece by piece"""
        pass


class OpenAIChatProvider(ChatProvider):
    """OpenAI-compatible chat completions (OpenAI, Reploy)"""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gpt-3.5-turbo",
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        max_tokens: int = 150,
        temperature: float = 0.7,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url
        self.client = client or AsyncOpenAI(
            api_key=api_key or "not-configured",
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    @property
    def source_name(self) -> str:
        if self.base_url and "reploy" in self.base_url:
            return "reploy"
        return "openai"

    def _translate_error(self, e: Exception) -> UpstreamError:
        if isinstance(e, (openai.APITimeoutError, openai.APIConnectionError)):
            return UpstreamUnavailableError(
                self.source_name, f"{type(e).__name__}: {e}", PUBLIC_CHAT_ERROR
            )
        if isinstance(e, openai.APIStatusError):
            return UpstreamError(
                self.source_name, f"HTTP {e.status_code}: {e.message}", PUBLIC_CHAT_ERROR
            )
        return UpstreamError(self.source_name, f"{type(e).__name__}: {e}", PUBLIC_CHAT_ERROR)

    async def complete(self, messages: List[Dict[str, str]]) -> ChatCompletion:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except openai.OpenAIError as e:
            raise self._translate_error(e)

        content = None
        if response.choices:
            content = response.choices[0].message.content

        usage = {}
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens or 0,
                "completion_tokens": response.usage.completion_tokens or 0,
                "total_tokens": response.usage.total_tokens or 0,
            }

        return ChatCompletion(
            content=content if content is not None else FALLBACK_REPLY,
            model=getattr(response, "model", None) or self.model,
            usage=usage,
        )

    async def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except openai.OpenAIError as e:
            raise self._translate_error(e)
