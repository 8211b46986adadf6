"""Tests for the LLM client layer used by the intent classifier.

Tests cover:
- OllamaLLMClient with a mocked Ollama async client (JSON format requested)
- PaidLLMClient with mocked Anthropic and OpenAI SDKs
- FallbackLLMClient composite behavior (primary → fallback)
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from voxledger.assistant.llm_client import (
    ChatMessage,
    FallbackLLMClient,
    LLMResponse,
    OllamaLLMClient,
    PaidLLMClient,
)

_ORACLE_JSON = '{"intent": {"primary": "transaction", "confidence": 0.9}, "context": {}}'


def test_llm_response_defaults() -> None:
    resp = LLMResponse()
    assert resp.content == ""
    assert resp.input_tokens is None
    assert resp.provider == ""


# ── OllamaLLMClient ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ollama_client_returns_content_and_usage() -> None:
    mock_response = {
        "message": {"content": _ORACLE_JSON},
        "prompt_eval_count": 50,
        "eval_count": 20,
    }

    with patch("ollama.AsyncClient") as mock_ollama_cls:
        instance = AsyncMock()
        instance.chat = AsyncMock(return_value=mock_response)
        mock_ollama_cls.return_value = instance

        client = OllamaLLMClient(base_url="http://test:11434", model="test-model")
        result = await client.chat([ChatMessage(role="user", content="paid maid 2000")])

    assert result.content == _ORACLE_JSON
    assert result.input_tokens == 50
    assert result.output_tokens == 20
    assert result.provider == "ollama"
    assert result.model == "test-model"
    assert result.latency_ms is not None

    kwargs = instance.chat.call_args.kwargs
    assert kwargs["format"] == "json"
    assert kwargs["options"] == {"temperature": 0}
    assert kwargs["messages"] == [{"role": "user", "content": "paid maid 2000"}]


@pytest.mark.asyncio
async def test_ollama_client_plain_text_mode() -> None:
    with patch("ollama.AsyncClient") as mock_ollama_cls:
        instance = AsyncMock()
        instance.chat = AsyncMock(return_value={"message": {"content": "hello"}})
        mock_ollama_cls.return_value = instance

        client = OllamaLLMClient(base_url="http://test:11434", model="test-model")
        result = await client.chat([ChatMessage(role="user", content="hi")], json_output=False)

    assert result.content == "hello"
    assert "format" not in instance.chat.call_args.kwargs


# ── PaidLLMClient ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_paid_client_anthropic_joins_text_blocks() -> None:
    first = MagicMock()
    first.type = "text"
    first.text = '{"intent": '
    second = MagicMock()
    second.type = "text"
    second.text = '{"primary": "query", "confidence": 0.8}}'

    mock_response = MagicMock()
    mock_response.content = [first, second]
    mock_response.usage.input_tokens = 80
    mock_response.usage.output_tokens = 15

    with patch("anthropic.AsyncAnthropic") as mock_anthropic_cls:
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)
        mock_anthropic_cls.return_value = mock_client

        client = PaidLLMClient(provider="anthropic", model="claude-3-5-haiku-latest")
        result = await client.chat([
            ChatMessage(role="system", content="You are VoxLedger."),
            ChatMessage(role="user", content="how much did I spend"),
        ])

    assert result.content == '{"intent": {"primary": "query", "confidence": 0.8}}'
    assert result.provider == "anthropic"
    kwargs = mock_client.messages.create.call_args.kwargs
    assert kwargs["system"] == "You are VoxLedger."
    assert kwargs["messages"] == [{"role": "user", "content": "how much did I spend"}]


@pytest.mark.asyncio
async def test_paid_client_openai_requests_json_object() -> None:
    mock_choice = MagicMock()
    mock_choice.message.content = _ORACLE_JSON

    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage.prompt_tokens = 60
    mock_response.usage.completion_tokens = 10

    with patch("openai.AsyncOpenAI") as mock_openai_cls:
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)
        mock_openai_cls.return_value = mock_client

        client = PaidLLMClient(provider="openai", model="gpt-4o-mini")
        result = await client.chat([ChatMessage(role="user", content="hello")])

    assert result.content == _ORACLE_JSON
    assert result.input_tokens == 60
    assert result.provider == "openai"
    kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_paid_client_unknown_provider_raises() -> None:
    client = PaidLLMClient(provider="unknown", model="test")
    with pytest.raises(ValueError, match="Unknown LLM provider"):
        await client.chat([ChatMessage(role="user", content="hi")])


# ── FallbackLLMClient ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_fallback_uses_primary_on_success() -> None:
    primary = AsyncMock()
    primary.chat = AsyncMock(return_value=LLMResponse(content="primary ok", provider="ollama", model="test"))
    fallback = AsyncMock()
    fallback.chat = AsyncMock()

    client = FallbackLLMClient(primary=primary, fallback=fallback)
    result = await client.chat([ChatMessage(role="user", content="hello")])

    assert result.content == "primary ok"
    fallback.chat.assert_not_called()


@pytest.mark.asyncio
async def test_fallback_uses_fallback_on_primary_failure() -> None:
    primary = AsyncMock()
    primary.chat = AsyncMock(side_effect=ConnectionError("Ollama down"))
    fallback = AsyncMock()
    fallback.chat = AsyncMock(return_value=LLMResponse(content="fallback ok", provider="anthropic", model="haiku"))

    client = FallbackLLMClient(primary=primary, fallback=fallback)
    result = await client.chat([ChatMessage(role="user", content="hello")])

    assert result.content == "fallback ok"
    assert result.provider == "anthropic (fallback)"


@pytest.mark.asyncio
async def test_fallback_raises_when_both_fail() -> None:
    primary = AsyncMock()
    primary.chat = AsyncMock(side_effect=ConnectionError("Ollama down"))
    fallback = AsyncMock()
    fallback.chat = AsyncMock(side_effect=RuntimeError("API down"))

    client = FallbackLLMClient(primary=primary, fallback=fallback)
    with pytest.raises(RuntimeError, match="API down"):
        await client.chat([ChatMessage(role="user", content="hello")])
