"""Tests for the HTTP API, with the assistant entry point patched out."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from aiohttp import test_utils

from voxledger.api.server import create_app, result_payload
from voxledger.assistant import NeedsMoreInfo, UtteranceResult
from voxledger.ledger.operations import StoreOperation


def _client() -> test_utils.TestClient:
    return test_utils.TestClient(test_utils.TestServer(create_app(persist=False)))


def test_result_payload_shapes_question() -> None:
    question = "Could you please specify the maid's name?"
    payload = result_payload(
        UtteranceResult(
            response_text=question,
            needs_more_info=NeedsMoreInfo(field="service_provider.name", question=question),
        )
    )

    assert payload == {
        "success": True,
        "response": question,
        "needsMoreInfo": {"field": "service_provider.name", "question": question},
        "storeOperations": [],
    }


def test_result_payload_serializes_operations() -> None:
    op = StoreOperation(
        table="reminders",
        data={"title": "pay electricity bill", "due_date": date(2026, 10, 17), "amount": Decimal("1200")},
    )
    payload = result_payload(UtteranceResult(response_text="Sure.", store_operations=[op]))

    (dumped,) = payload["storeOperations"]
    assert dumped["data"]["due_date"] == "2026-10-17"
    assert payload["needsMoreInfo"] is None


@pytest.mark.asyncio
async def test_post_message_returns_reply() -> None:
    reply = UtteranceResult(response_text="Paid ₹450 for vegetables.")

    with patch("voxledger.api.server.handle_utterance", new=AsyncMock(return_value=reply)) as mock_handle:
        async with _client() as client:
            resp = await client.post("/api/assistant", json={"userId": 7, "message": "spent 450 on vegetables"})
            body = await resp.json()

    assert resp.status == 200
    assert body["success"] is True
    assert body["response"] == "Paid ₹450 for vegetables."
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    mock_handle.assert_awaited_once_with("7", "spent 450 on vegetables")


@pytest.mark.asyncio
async def test_post_invalid_json_is_400() -> None:
    async with _client() as client:
        resp = await client.post(
            "/api/assistant", data="not json", headers={"Content-Type": "application/json"},
        )
        body = await resp.json()

    assert resp.status == 400
    assert body["success"] is False


@pytest.mark.asyncio
async def test_post_missing_message_is_400() -> None:
    async with _client() as client:
        resp = await client.post("/api/assistant", json={"userId": "u1", "message": "   "})
        body = await resp.json()

    assert resp.status == 400
    assert body["response"] == "Please tell me what you would like to record."


@pytest.mark.asyncio
async def test_unexpected_error_is_polite_500() -> None:
    with patch("voxledger.api.server.handle_utterance", new=AsyncMock(side_effect=RuntimeError("bug"))):
        async with _client() as client:
            resp = await client.post("/api/assistant", json={"userId": "u1", "message": "hello"})
            body = await resp.json()

    assert resp.status == 500
    assert body["success"] is False
    assert "RuntimeError" not in body["response"]


@pytest.mark.asyncio
async def test_options_preflight() -> None:
    async with _client() as client:
        resp = await client.options("/api/assistant")

    assert resp.status == 204
    assert "POST" in resp.headers["Access-Control-Allow-Methods"]
