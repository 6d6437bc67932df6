"""Text-generation provider abstraction.

Supports Anthropic (default) and OpenAI behind one interface:
``chat(messages, max_tokens) -> ChatResponse``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from letter_to_you.core.config import settings
from letter_to_you.core.errors import ConfigurationError
from letter_to_you.services.http_service import request_with_retries

logger = logging.getLogger(__name__)

ANTHROPIC_DEFAULT_MODEL = "claude-sonnet-4-20250514"
OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
ANTHROPIC_API_VERSION = "2023-06-01"
PROVIDER_TIMEOUT_SECONDS = 60.0


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


@dataclass
class ChatResponse:
    """Response from a text-generation provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str


class AIProvider(ABC):
    """Abstract base class for text-generation providers."""

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        """Send a chat completion request."""
        pass


class AnthropicProvider(AIProvider):
    """Anthropic Messages API provider."""

    def __init__(self, api_key: str, default_model: str = ANTHROPIC_DEFAULT_MODEL):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = "https://api.anthropic.com/v1"

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model

        # System prompt travels outside the message list
        system = "\n\n".join(m.content for m in messages if m.role == "system")
        request_body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.role != "system"
            ],
        }
        if system:
            request_body["system"] = system

        async with httpx.AsyncClient(timeout=PROVIDER_TIMEOUT_SECONDS) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(
                    f"{self.base_url}/messages",
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_API_VERSION,
                        "Content-Type": "application/json",
                    },
                    json=request_body,
                )

            response = await request_with_retries(request_fn, retry_statuses={429, 529})
            response.raise_for_status()
            data = response.json()

        text_blocks = [
            block.get("text", "")
            for block in data.get("content", [])
            if block.get("type") == "text"
        ]
        usage = data.get("usage", {})
        prompt_tokens = usage.get("input_tokens", 0)
        completion_tokens = usage.get("output_tokens", 0)
        return ChatResponse(
            content="".join(text_blocks),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=model,
        )


class OpenAIProvider(AIProvider):
    """OpenAI API provider."""

    def __init__(self, api_key: str, default_model: str = OPENAI_DEFAULT_MODEL):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = "https://api.openai.com/v1"

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model

        async with httpx.AsyncClient(timeout=PROVIDER_TIMEOUT_SECONDS) as client:

            async def request_fn() -> httpx.Response:
                return await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": model,
                        "messages": [
                            {"role": m.role, "content": m.content} for m in messages
                        ],
                        "temperature": temperature,
                        "max_tokens": max_tokens,
                    },
                )

            response = await request_with_retries(request_fn, retry_statuses={429})
            response.raise_for_status()
            data = response.json()

        usage = data.get("usage", {})
        return ChatResponse(
            content=data["choices"][0]["message"]["content"],
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            model=model,
        )


def get_provider(
    provider_name: str, api_key: str, model: str | None = None
) -> AIProvider:
    """Factory function to get the appropriate provider."""
    if provider_name == "anthropic":
        return AnthropicProvider(api_key, default_model=model or ANTHROPIC_DEFAULT_MODEL)
    elif provider_name == "openai":
        return OpenAIProvider(api_key, default_model=model or OPENAI_DEFAULT_MODEL)
    else:
        raise ValueError(f"Unknown provider: {provider_name}")


def get_configured_provider() -> AIProvider:
    """
    Build the provider named in settings.

    Raises:
        ConfigurationError: provider unknown or its API key is missing
    """
    name = (settings.AI_PROVIDER or "anthropic").lower()
    api_key = {
        "anthropic": settings.ANTHROPIC_API_KEY,
        "openai": settings.OPENAI_API_KEY,
    }.get(name)
    if api_key is None:
        raise ConfigurationError(f"Unknown AI provider: {name}")
    if not api_key:
        logger.error("AI provider %s has no API key configured", name)
        raise ConfigurationError("Text generation not configured")
    return get_provider(name, api_key, settings.AI_MODEL or None)
