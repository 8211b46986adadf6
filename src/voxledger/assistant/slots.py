"""Completeness rules and the clarification question table.

Pure functions over drafts: no I/O, no state.  The coordinator asks for
exactly one field per turn, always the one :func:`next_missing_field`
returns, phrased by :func:`question_for`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from voxledger.assistant.drafts import (
    AttendanceDraft,
    RecordKind,
    ReminderDraft,
    TransactionDraft,
    merge_slots,
)

# ── Field names ───────────────────────────────────────────────────────────────

AMOUNT = "amount"
DESCRIPTION = "description"
PROVIDER_NAME = "service_provider.name"
PROVIDER_WAGE = "service_provider.wage"
PROVIDER_TYPE = "provider_type"
NAME = "name"
WAGE = "wage"
VISITS_PER_WEEK = "wage.schedule.visits_per_week"
HOURS_PER_VISIT = "wage.schedule.hours_per_visit"
STATUS = "status"
DUE_DATE = "due_date"

# ── Question table ────────────────────────────────────────────────────────────

#: One question per field.  ``{provider}`` is the provider type ("maid"),
#: ``{who}`` the provider's name when known, otherwise "the maid".
QUESTIONS: dict[RecordKind, dict[str, str]] = {
    RecordKind.TRANSACTION: {
        AMOUNT: "Could you tell me the amount?",
        DESCRIPTION: "What was this payment for?",
        PROVIDER_NAME: "Could you please specify the {provider}'s name?",
        PROVIDER_WAGE: "How much do we pay {who} and how often (daily/weekly/monthly)?",
        "payment_method": "How did you pay for this?",
        "date": "When did this transaction occur?",
        "categories": "What category does this belong to?",
    },
    RecordKind.ATTENDANCE: {
        PROVIDER_TYPE: "Who is this about? For example the maid, the driver or the cook.",
        NAME: "Could you please specify the {provider}'s name?",
        WAGE: "How much do we pay {who} and how often (daily/weekly/monthly)?",
        VISITS_PER_WEEK: "How many times per week does {who} come?",
        HOURS_PER_VISIT: "How many hours per visit?",
        STATUS: "Was {who} present or absent?",
    },
    RecordKind.REMINDER: {
        DUE_DATE: "When should I remind you?",
        "title": "What should I remind you about?",
    },
}

_FALLBACK_QUESTION = "Could you provide more details?"


# ── Completeness ──────────────────────────────────────────────────────────────


def missing_fields(draft: BaseModel) -> list[str]:
    """Return the required fields still missing, in asking order."""
    match draft:
        case TransactionDraft():
            return _missing_transaction(draft)
        case AttendanceDraft():
            return _missing_attendance(draft)
        case ReminderDraft():
            return [DUE_DATE] if draft.due_date is None else []
    raise TypeError(f"Not a draft: {type(draft).__name__}")


def next_missing_field(draft: BaseModel) -> str | None:
    """Return the single field to ask for next, or ``None`` if complete."""
    missing = missing_fields(draft)
    return missing[0] if missing else None


def is_complete(draft: BaseModel) -> bool:
    """Return ``True`` if *draft* has every field its kind requires."""
    return not missing_fields(draft)


def _missing_transaction(draft: TransactionDraft) -> list[str]:
    missing: list[str] = []
    if draft.amount is None:
        missing.append(AMOUNT)
    if not draft.description:
        missing.append(DESCRIPTION)
    provider = draft.service_provider
    if provider is not None and provider.type:
        if not provider.name:
            missing.append(PROVIDER_NAME)
        if provider.wage is None or not provider.wage.is_set():
            missing.append(PROVIDER_WAGE)
    return missing


def _missing_attendance(draft: AttendanceDraft) -> list[str]:
    missing: list[str] = []
    if not draft.provider_type:
        missing.append(PROVIDER_TYPE)
    if not draft.name:
        missing.append(NAME)
    wage = draft.wage
    if wage is None or not wage.is_set():
        missing.append(WAGE)
    schedule = wage.schedule if wage is not None else None
    if schedule is None or schedule.visits_per_week is None:
        missing.append(VISITS_PER_WEEK)
    if schedule is None or schedule.hours_per_visit is None:
        missing.append(HOURS_PER_VISIT)
    if draft.status is None:
        missing.append(STATUS)
    return missing


# ── Questions ─────────────────────────────────────────────────────────────────


def _provider_labels(draft: BaseModel) -> tuple[str, str]:
    """Return ``(provider, who)`` for question interpolation."""
    provider_type: str | None = None
    name: str | None = None
    match draft:
        case TransactionDraft(service_provider=sp) if sp is not None:
            provider_type, name = sp.type, sp.name
        case AttendanceDraft():
            provider_type, name = draft.provider_type, draft.name

    provider = provider_type or "service provider"
    if name:
        who = name
    elif provider_type:
        who = f"the {provider_type}"
    else:
        who = "them"
    return provider, who


def question_for(draft: BaseModel, field_name: str) -> str:
    """Return the clarification question for *field_name* on *draft*."""
    kind = RecordKind(draft.kind)  # type: ignore[attr-defined]
    template = QUESTIONS.get(kind, {}).get(field_name, _FALLBACK_QUESTION)
    provider, who = _provider_labels(draft)
    return template.format(provider=provider, who=who)


# ── Merging ───────────────────────────────────────────────────────────────────


def fill_draft(draft: BaseModel, kind: RecordKind, slots: dict[str, Any]) -> BaseModel:
    """Merge *slots* into *draft* unless the draft is already complete.

    A complete draft is frozen: it is routed as-is, so a late slot (say a
    provider mentioned after the amount and description were settled)
    never turns it back into an incomplete one.
    """
    if is_complete(draft):
        return draft.model_copy(deep=True)
    return merge_slots(draft, kind, slots)
