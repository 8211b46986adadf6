"""Lightweight aiohttp server exposing the assistant over HTTP.

``POST /api/assistant`` takes ``{"userId": ..., "message": ...}`` and
answers with the assistant's reply, the question it is asking (if any)
and the store operations written for a completed record.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from aiohttp import web

from voxledger.assistant import UtteranceResult, handle_utterance
from voxledger.config import settings
from voxledger.db.session import engine, get_session

logger = logging.getLogger(__name__)

_POLITE_ERROR = "Sorry, something went wrong. Could you try again?"


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def result_payload(result: UtteranceResult) -> dict[str, Any]:
    """Serialize an :class:`UtteranceResult` as the JSON response body."""
    needs = result.needs_more_info
    return {
        "success": True,
        "response": result.response_text,
        "needsMoreInfo": {"field": needs.field, "question": needs.question} if needs else None,
        "storeOperations": [op.model_dump(mode="json") for op in result.store_operations],
    }


async def handle_assistant_options(request: web.Request) -> web.Response:
    """OPTIONS /api/assistant: CORS preflight."""
    return web.Response(status=204, headers=_cors_headers())


async def handle_assistant_message(request: web.Request) -> web.Response:
    """POST /api/assistant: run one utterance through the assistant."""
    cors = _cors_headers()

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return web.json_response(
            {"success": False, "response": "Sorry, I couldn't read that request."}, status=400, headers=cors
        )
    if not isinstance(body, dict):
        return web.json_response(
            {"success": False, "response": "Sorry, I couldn't read that request."}, status=400, headers=cors
        )

    user_id = body.get("userId")
    message = body.get("message")
    if not user_id or not isinstance(message, str) or not message.strip():
        return web.json_response(
            {"success": False, "response": "Please tell me what you would like to record."},
            status=400,
            headers=cors,
        )

    user_id = str(user_id)
    logger.info("Assistant message from user %s: %s", user_id, message[:200])

    try:
        if request.app["persist"]:
            async with get_session() as session:
                result = await handle_utterance(user_id, message, session)
        else:
            result = await handle_utterance(user_id, message)
    except Exception:
        logger.exception("Assistant request failed for user %s", user_id)
        return web.json_response({"success": False, "response": _POLITE_ERROR}, status=500, headers=cors)

    return web.json_response(result_payload(result), headers=cors)


def create_app(*, persist: bool = True) -> web.Application:
    """Build the aiohttp application.

    Args:
        persist: Open a database session per request.  Disable to run the
            assistant without a database (drafts and replies only).
    """
    app = web.Application()
    app["persist"] = persist
    app.router.add_options("/api/assistant", handle_assistant_options)
    app.router.add_post("/api/assistant", handle_assistant_message)
    return app


async def run_server() -> None:
    """Start the HTTP server and serve until cancelled.

    This is the main coroutine invoked from ``__main__.py``.  It sets up
    logging, starts the aiohttp site and disposes the DB engine on exit.
    """
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    runner = web.AppRunner(create_app())
    await runner.setup()
    site = web.TCPSite(runner, settings.api_host, settings.api_port)
    await site.start()
    logger.info("VoxLedger API running on http://%s:%d", settings.api_host, settings.api_port)

    try:
        await asyncio.Event().wait()
    finally:
        logger.info("VoxLedger shutting down, disposing DB engine")
        await runner.cleanup()
        await engine.dispose()
