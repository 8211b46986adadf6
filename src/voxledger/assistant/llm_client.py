"""LLM client with Ollama primary and paid API fallback.

Defines a protocol-based interface for the intent oracle with three
concrete implementations:

- :class:`OllamaLLMClient`: wraps the Ollama async client (primary, local)
- :class:`PaidLLMClient`: wraps Anthropic or OpenAI SDKs (fallback)
- :class:`FallbackLLMClient`: composite: tries Ollama first, falls back to paid API

The classifier asks for a single JSON object, so clients only return text
content; parsing and validation happen in :mod:`voxledger.assistant.classifier`.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from voxledger.config import settings

logger = logging.getLogger(__name__)


# ── Data models ───────────────────────────────────────────────────────────────


class ChatMessage(BaseModel):
    """A single message in a chat conversation."""

    role: str  # "system", "user", "assistant"
    content: str = ""


class LLMResponse(BaseModel):
    """Structured response from an LLM call."""

    content: str = ""
    input_tokens: int | None = None
    output_tokens: int | None = None
    latency_ms: int | None = None
    provider: str = ""
    model: str = ""


# ── Protocol ──────────────────────────────────────────────────────────────────


@runtime_checkable
class LLMClient(Protocol):
    """Abstract interface for LLM communication."""

    async def chat(self, messages: list[ChatMessage], *, json_output: bool = True) -> LLMResponse:
        """Send a chat completion request to the LLM.

        Args:
            messages: Conversation as a list of chat messages.
            json_output: Ask the provider to constrain output to JSON
                where it supports that.

        Returns:
            The model's text reply with usage metadata.
        """
        ...


# ── Ollama implementation ─────────────────────────────────────────────────────


class OllamaLLMClient:
    """LLM client wrapping the Ollama async API.

    Uses ``settings.ollama_base_url`` and ``settings.ollama_model``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
    ) -> None:
        self._base_url = base_url or settings.ollama_base_url
        self._model = model or settings.ollama_model

    async def chat(self, messages: list[ChatMessage], *, json_output: bool = True) -> LLMResponse:
        """Send a chat request to the Ollama server."""
        import ollama

        client = ollama.AsyncClient(host=self._base_url)

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "options": {"temperature": 0},
        }
        if json_output:
            kwargs["format"] = "json"

        start = time.monotonic()
        try:
            response = await client.chat(**kwargs)
        finally:
            latency_ms = int((time.monotonic() - start) * 1000)

        message = response.get("message", {})
        return LLMResponse(
            content=message.get("content", "") or "",
            input_tokens=response.get("prompt_eval_count"),
            output_tokens=response.get("eval_count"),
            latency_ms=latency_ms,
            provider="ollama",
            model=self._model,
        )


# ── Paid API implementation ──────────────────────────────────────────────────


class PaidLLMClient:
    """LLM client wrapping Anthropic or OpenAI SDKs.

    Provider is selected via ``settings.fallback_llm_provider``.
    """

    def __init__(
        self,
        provider: str | None = None,
        model: str | None = None,
    ) -> None:
        self._provider = provider or settings.fallback_llm_provider
        self._model = model or settings.fallback_llm_model

    async def chat(self, messages: list[ChatMessage], *, json_output: bool = True) -> LLMResponse:
        """Send a chat request to the paid API."""
        if self._provider == "anthropic":
            return await self._chat_anthropic(messages)
        elif self._provider == "openai":
            return await self._chat_openai(messages, json_output=json_output)
        else:
            raise ValueError(f"Unknown LLM provider: {self._provider}")

    async def _chat_anthropic(self, messages: list[ChatMessage]) -> LLMResponse:
        """Send a request to the Anthropic API."""
        import anthropic

        client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)

        # Anthropic takes the system prompt separately.
        system_text = ""
        api_messages: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "system":
                system_text = msg.content
            else:
                api_messages.append({"role": msg.role, "content": msg.content})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": 1024,
            "temperature": 0,
            "messages": api_messages,
        }
        if system_text:
            kwargs["system"] = system_text

        start = time.monotonic()
        response = await client.messages.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        content = "".join(block.text for block in response.content if block.type == "text")

        return LLMResponse(
            content=content,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            latency_ms=latency_ms,
            provider="anthropic",
            model=self._model,
        )

    async def _chat_openai(self, messages: list[ChatMessage], *, json_output: bool) -> LLMResponse:
        """Send a request to the OpenAI API."""
        import openai

        client = openai.AsyncOpenAI(api_key=settings.openai_api_key)

        kwargs: dict[str, Any] = {
            "model": self._model,
            "temperature": 0,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}

        start = time.monotonic()
        response = await client.chat.completions.create(**kwargs)
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=response.choices[0].message.content or "",
            input_tokens=response.usage.prompt_tokens if response.usage else None,
            output_tokens=response.usage.completion_tokens if response.usage else None,
            latency_ms=latency_ms,
            provider="openai",
            model=self._model,
        )


# ── Fallback composite client ────────────────────────────────────────────────


class FallbackLLMClient:
    """Composite client: tries local Ollama first, falls back to paid API.

    On Ollama failure (connection error, timeout, malformed response), the
    request is retried via the paid API.  If both fail the last error
    propagates; the classifier turns it into an ``unknown`` intent.
    """

    def __init__(
        self,
        primary: LLMClient | None = None,
        fallback: LLMClient | None = None,
    ) -> None:
        self._primary = primary or OllamaLLMClient()
        self._fallback = fallback or PaidLLMClient()

    async def chat(self, messages: list[ChatMessage], *, json_output: bool = True) -> LLMResponse:
        """Try Ollama; on failure fall back to paid API."""
        try:
            response = await self._primary.chat(messages, json_output=json_output)
            logger.debug(
                "Ollama responded in %dms (tokens: %s/%s)",
                response.latency_ms or 0,
                response.input_tokens,
                response.output_tokens,
            )
            return response

        except Exception as exc:
            fallback_reason = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "Ollama call failed (%s), falling back to paid API",
                fallback_reason,
            )

        try:
            response = await self._fallback.chat(messages, json_output=json_output)
            response.provider = f"{response.provider} (fallback)"
            logger.info(
                "Fallback API responded in %dms (reason: %s)",
                response.latency_ms or 0,
                fallback_reason,
            )
            return response

        except Exception as fallback_exc:
            logger.error("Fallback API also failed: %s", fallback_exc)
            raise
