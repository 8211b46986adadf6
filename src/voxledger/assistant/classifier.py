"""LLM-backed intent classifier.

Wraps the oracle call behind one fixed contract: :meth:`IntentClassifier.classify`
always returns a :class:`ClassifiedIntent`.  Network errors, timeouts,
non-JSON replies and replies missing ``intent`` / ``confidence`` all
degrade to ``unknown`` with confidence ``0``; nothing raised by the LLM
client escapes this module.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Callable, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel

from voxledger.assistant.dates import parse_date
from voxledger.assistant.drafts import ClassifiedIntent, RecordKind
from voxledger.assistant.errors import OracleUnavailable
from voxledger.assistant.llm_client import ChatMessage, LLMClient
from voxledger.assistant.parser import extract_amount, query_slots
from voxledger.assistant.prompts import (
    HISTORY_PROMPT,
    PRIOR_DRAFT_PROMPT,
    SYSTEM_PROMPT,
    TODAY_PROMPT,
)
from voxledger.assistant.session_store import HistoryTurn
from voxledger.config import settings

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)

_PAYMENT_METHOD_ALIASES: dict[str, str] = {
    "upi": "upi", "gpay": "upi", "phonepe": "upi", "paytm": "upi",
    "cash": "cash",
    "card": "card", "credit_card": "card", "debit_card": "card",
    "bank_transfer": "bank_transfer", "bank": "bank_transfer", "neft": "bank_transfer",
    "cheque": "cheque", "check": "cheque",
}


# ── Response parsing ──────────────────────────────────────────────────────────


def strip_fences(content: str) -> str:
    """Remove markdown code fences (```json ... ```) around a JSON reply."""
    match = _FENCE_RE.search(content)
    text = match.group(1) if match else content
    text = text.strip()
    if text and not text.startswith("{"):
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start : end + 1]
    return text


def parse_oracle_payload(content: str) -> dict[str, Any]:
    """Decode and sanity-check the oracle's JSON reply.

    Raises:
        OracleUnavailable: If the reply is not a JSON object with an
            ``intent`` carrying a ``primary`` label and a numeric
            ``confidence``.
    """
    try:
        payload = json.loads(strip_fences(content))
    except (json.JSONDecodeError, ValueError) as exc:
        raise OracleUnavailable(f"Oracle reply is not JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise OracleUnavailable("Oracle reply is not a JSON object")
    intent = payload.get("intent")
    if not isinstance(intent, dict) or not isinstance(intent.get("primary"), str):
        raise OracleUnavailable("Oracle reply has no intent")
    confidence = intent.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise OracleUnavailable("Oracle reply has no numeric confidence")
    return payload


def _section(context: dict[str, Any], name: str) -> dict[str, Any]:
    value = context.get(name)
    return value if isinstance(value, dict) else {}


def _amount(value: Any) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    if isinstance(value, str):
        return extract_amount(value)
    return None


def _resolve_date(value: Any, today: date, *, prefer_future: bool = False) -> date | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return parse_date(value, today, prefer_future=prefer_future)


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    """Drop ``None`` values and empty nested dicts."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            value = _compact(value)
            if not value:
                continue
        if value is None:
            continue
        result[key] = value
    return result


def _lower(value: Any) -> str | None:
    return value.strip().lower() if isinstance(value, str) and value.strip() else None


def slots_from_context(kind: RecordKind, context: dict[str, Any], text: str, today: date) -> dict[str, Any]:
    """Map the oracle's ``context`` block onto draft slots for *kind*."""
    temporal = _section(context, "temporal")
    financial = _section(context, "financial")
    provider = _section(context, "service_provider")
    reminder = _section(context, "reminder")
    attendance = _section(context, "attendance")

    wage = {
        "amount": _amount(provider.get("wage_amount")),
        "frequency": _lower(provider.get("wage_frequency")),
    }

    if kind == RecordKind.TRANSACTION:
        category = _lower(financial.get("category"))
        method = _lower(financial.get("payment_method"))
        slots: dict[str, Any] = {
            "amount": _amount(financial.get("amount")),
            "type": _lower(financial.get("type")),
            "description": financial.get("description") or None,
            "categories": [category] if category else None,
            "payment_method": _PAYMENT_METHOD_ALIASES.get(method or ""),
            "date": _resolve_date(temporal.get("reference_date"), today),
            "service_provider": {
                "type": _lower(provider.get("type")),
                "name": provider.get("name") or None,
                "wage": wage if wage["amount"] is not None else None,
            },
        }
    elif kind == RecordKind.ATTENDANCE:
        slots = {
            "provider_type": _lower(provider.get("type")),
            "name": provider.get("name") or None,
            "status": _lower(attendance.get("status")),
            "date": _resolve_date(temporal.get("reference_date"), today),
            "wage": {
                **wage,
                "schedule": {
                    "visits_per_week": attendance.get("visits_per_week"),
                    "hours_per_visit": attendance.get("hours_per_visit"),
                },
            },
        }
    elif kind == RecordKind.REMINDER:
        due = reminder.get("due_date") or temporal.get("reference_date")
        slots = {
            "title": reminder.get("title") or None,
            "due_date": _resolve_date(due, today, prefer_future=True),
            "amount": _amount(financial.get("amount")),
            "recurring": temporal.get("is_recurring") if isinstance(temporal.get("is_recurring"), bool) else None,
            "frequency": _lower(temporal.get("frequency")),
        }
    elif kind == RecordKind.QUERY:
        slots = query_slots(text)
    else:
        slots = {}

    compacted = _compact(slots)
    sp = compacted.get("service_provider")
    if isinstance(sp, dict) and "type" not in sp and "name" not in sp:
        compacted.pop("service_provider")
    return compacted


# ── Classifier ────────────────────────────────────────────────────────────────


class IntentClassifier:
    """Classify utterances with the LLM oracle.

    Args:
        llm_client: Client used for the oracle call.
        timeout: Seconds before the call is abandoned
            (defaults to ``settings.oracle_timeout_seconds``).
        confidence_threshold: Results below this are reported as unknown
            (defaults to ``settings.confidence_threshold``).
        today: Callable returning the reference day for relative dates.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        timeout: float | None = None,
        confidence_threshold: float | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._llm = llm_client
        self._timeout = timeout if timeout is not None else settings.oracle_timeout_seconds
        self._threshold = (
            confidence_threshold if confidence_threshold is not None else settings.confidence_threshold
        )
        self._today = today

    async def classify(
        self,
        text: str,
        prior_draft: BaseModel | None = None,
        recent_history: Sequence[HistoryTurn] = (),
    ) -> ClassifiedIntent:
        """Classify *text*, never raising.

        Args:
            text: The user's utterance.
            prior_draft: The pending draft this utterance may be answering.
            recent_history: Recent utterances, oldest first.

        Returns:
            The classified intent, or ``unknown`` with confidence ``0`` when
            the oracle fails.  Confidences below the threshold come back as
            ``unknown`` with the reported confidence.
        """
        try:
            intent = await self._classify(text, prior_draft, recent_history)
        except OracleUnavailable as exc:
            logger.warning("Classifier degraded to unknown: %s", exc)
            return ClassifiedIntent.unknown()

        if intent.kind != RecordKind.UNKNOWN and intent.confidence < self._threshold:
            logger.info(
                "Classifier confidence %.2f below %.2f for %s, treating as unknown",
                intent.confidence, self._threshold, intent.kind,
            )
            return ClassifiedIntent(kind=RecordKind.UNKNOWN, confidence=intent.confidence)
        return intent

    def build_messages(
        self,
        text: str,
        prior_draft: BaseModel | None = None,
        recent_history: Sequence[HistoryTurn] = (),
    ) -> list[ChatMessage]:
        """Assemble the oracle prompt for one utterance."""
        messages = [
            ChatMessage(role="system", content=SYSTEM_PROMPT),
            ChatMessage(role="user", content=TODAY_PROMPT.format(today=self._today().isoformat())),
        ]
        if recent_history:
            lines = "\n".join(f"- {turn.text}" for turn in recent_history)
            messages.append(ChatMessage(role="user", content=HISTORY_PROMPT.format(history=lines)))
        if prior_draft is not None:
            messages.append(
                ChatMessage(
                    role="user",
                    content=PRIOR_DRAFT_PROMPT.format(
                        kind=getattr(prior_draft, "kind", "record"),
                        draft=prior_draft.model_dump_json(exclude_none=True),
                    ),
                )
            )
        messages.append(ChatMessage(role="user", content=text))
        return messages

    async def _classify(
        self,
        text: str,
        prior_draft: BaseModel | None,
        recent_history: Sequence[HistoryTurn],
    ) -> ClassifiedIntent:
        messages = self.build_messages(text, prior_draft, recent_history)
        logger.info("Classifier request: %s", text if len(text) <= 200 else text[:200] + "...")

        try:
            response = await asyncio.wait_for(self._llm.chat(messages), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise OracleUnavailable(f"Oracle timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise OracleUnavailable(f"{type(exc).__name__}: {exc}") from exc

        content = response.content or ""
        logger.info(
            "Classifier response (%s, %sms): %s",
            response.provider or "?",
            response.latency_ms,
            content if len(content) <= 500 else content[:500] + "...",
        )

        payload = parse_oracle_payload(content)
        intent_block = payload["intent"]
        primary = intent_block["primary"].strip().lower()
        try:
            kind = RecordKind(primary)
        except ValueError:
            kind = RecordKind.UNKNOWN
        confidence = min(max(float(intent_block["confidence"]), 0.0), 1.0)

        context = payload.get("context")
        slots = slots_from_context(kind, context if isinstance(context, dict) else {}, text, self._today())
        missing = intent_block.get("missing_fields")
        return ClassifiedIntent(
            kind=kind,
            confidence=confidence,
            slots=slots,
            missing_fields=[str(f) for f in missing] if isinstance(missing, list) else [],
        )
