"""Intent resolution and slot-filling layer.

Provides the entry point for the HTTP layer:

- :func:`handle_utterance`: send one user utterance through the
  slot-filling coordinator (parse → classify → merge → ask or complete).

It returns an :class:`~voxledger.assistant.coordinator.UtteranceResult`.
The LLM client, session store and coordinator are module-level lazy
singletons that tests may override.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.classifier import IntentClassifier
from voxledger.assistant.coordinator import (
    NeedsMoreInfo,
    SlotFillingCoordinator,
    UtteranceResult,
)
from voxledger.assistant.errors import StoreWriteFailure
from voxledger.assistant.llm_client import FallbackLLMClient, LLMClient
from voxledger.assistant.session_store import SessionStore
from voxledger.config import settings

logger = logging.getLogger(__name__)

STORE_FAILURE_REPLY = "Sorry, something went wrong. Could you try again?"

# Module-level LLM client, lazily initialized.
_llm_client: LLMClient | None = None

# Module-level draft store, lazily initialized.
_session_store: SessionStore | None = None

# Module-level coordinator, lazily initialized.
_coordinator: SlotFillingCoordinator | None = None


def get_llm_client() -> LLMClient:
    """Return the module-level LLM client, creating it on first call."""
    global _llm_client
    if _llm_client is None:
        _llm_client = FallbackLLMClient()
    return _llm_client


def set_llm_client(client: LLMClient) -> None:
    """Override the module-level LLM client (useful for testing)."""
    global _llm_client, _coordinator
    _llm_client = client
    # Reset coordinator so it picks up the new client.
    _coordinator = None


def get_session_store() -> SessionStore:
    """Return the module-level session store, creating it on first call."""
    global _session_store
    if _session_store is None:
        _session_store = SessionStore(
            ttl_seconds=settings.draft_ttl_seconds,
            history_ttl_seconds=settings.history_ttl_seconds,
        )
    return _session_store


def set_session_store(store: SessionStore) -> None:
    """Override the module-level session store (useful for testing)."""
    global _session_store, _coordinator
    _session_store = store
    _coordinator = None


def get_coordinator() -> SlotFillingCoordinator:
    """Return the module-level coordinator, creating it on first call."""
    global _coordinator
    if _coordinator is None:
        _coordinator = SlotFillingCoordinator(
            store=get_session_store(),
            classifier=IntentClassifier(get_llm_client()),
        )
    return _coordinator


def set_coordinator(coordinator: SlotFillingCoordinator | None) -> None:
    """Override the module-level coordinator (useful for testing)."""
    global _coordinator
    _coordinator = coordinator


async def handle_utterance(
    user_id: str,
    text: str,
    session: AsyncSession | None = None,
) -> UtteranceResult:
    """Send one utterance through the slot-filling coordinator.

    This is the primary entry point called by the HTTP handler.  It never
    raises: a failed write is answered with a polite sentence and the
    completed record is kept for a retry, and any other error is logged,
    rolled back and answered the same way.

    Args:
        user_id: Identifier of the speaking user.
        text: The utterance (already transcribed).
        session: Active async database session, or ``None`` to run without
            persistence.

    Returns:
        An :class:`UtteranceResult` with the reply, the question being asked
        (if any) and the store operations written.
    """
    try:
        return await get_coordinator().handle(user_id, text, session)
    except StoreWriteFailure:
        logger.exception("Store write failed for user %s", user_id)
        if session is not None:
            await session.rollback()
        return UtteranceResult(response_text=STORE_FAILURE_REPLY)
    except Exception:
        logger.exception("Unexpected error handling utterance for user %s", user_id)
        if session is not None:
            await session.rollback()
        return UtteranceResult(response_text=STORE_FAILURE_REPLY)


__all__ = [
    "NeedsMoreInfo",
    "STORE_FAILURE_REPLY",
    "UtteranceResult",
    "get_coordinator",
    "get_llm_client",
    "get_session_store",
    "handle_utterance",
    "set_coordinator",
    "set_llm_client",
    "set_session_store",
]
