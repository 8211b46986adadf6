"""Tests for draft models, slot coercion and non-destructive merging."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from voxledger.assistant.drafts import (
    AttendanceDraft,
    ClassifiedIntent,
    RecordKind,
    ReminderDraft,
    TransactionDraft,
    build_draft,
    draft_from_dict,
    merge_slots,
)
from voxledger.assistant.errors import InvalidMergeState


def test_build_draft_ignores_unknown_keys() -> None:
    draft = build_draft(RecordKind.TRANSACTION, {"amount": 500, "mood": "happy"})
    assert isinstance(draft, TransactionDraft)
    assert draft.amount == Decimal("500")


def test_build_draft_drops_only_invalid_slots() -> None:
    draft = build_draft(RecordKind.TRANSACTION, {"amount": "a lot", "description": "milk"})
    assert draft.amount is None
    assert draft.description == "milk"


def test_build_draft_rejects_query_kind() -> None:
    with pytest.raises(ValueError, match="No draft model"):
        build_draft(RecordKind.QUERY, {})


def test_merge_never_overwrites_filled_fields() -> None:
    draft = TransactionDraft(amount=Decimal("2000"))
    merged = merge_slots(draft, RecordKind.TRANSACTION, {"amount": 3000, "description": "maid"})

    assert merged.amount == Decimal("2000")
    assert merged.description == "maid"


def test_merge_does_not_modify_input_draft() -> None:
    draft = TransactionDraft(amount=Decimal("2000"))
    merge_slots(draft, RecordKind.TRANSACTION, {"description": "maid"})
    assert draft.description is None


def test_merge_unions_categories() -> None:
    draft = TransactionDraft(categories=["groceries"])
    merged = merge_slots(draft, RecordKind.TRANSACTION, {"categories": ["medical", "groceries"]})
    assert merged.categories == ["groceries", "medical"]


def test_merge_fills_nested_provider_fields() -> None:
    draft = TransactionDraft(amount=Decimal("2000"), service_provider={"type": "maid"})
    merged = merge_slots(
        draft,
        RecordKind.TRANSACTION,
        {"service_provider": {"type": "driver", "name": "Lakshmi"}},
    )

    assert merged.service_provider.type == "maid"
    assert merged.service_provider.name == "Lakshmi"


def test_merge_is_idempotent() -> None:
    draft = AttendanceDraft(provider_type="maid")
    slots = {"name": "Lakshmi", "wage": {"amount": 2000, "frequency": "monthly"}}

    once = merge_slots(draft, RecordKind.ATTENDANCE, slots)
    twice = merge_slots(once, RecordKind.ATTENDANCE, slots)

    assert once == twice


def test_merge_only_adds_information() -> None:
    draft = ReminderDraft(title="pay electricity bill")
    merged = merge_slots(draft, RecordKind.REMINDER, {"due_date": date(2026, 10, 17)})

    before = draft.model_dump(exclude_none=True)
    after = merged.model_dump(exclude_none=True)
    assert all(after[key] == value for key, value in before.items())
    assert merged.due_date == date(2026, 10, 17)


def test_merge_wrong_kind_raises() -> None:
    with pytest.raises(InvalidMergeState) as exc_info:
        merge_slots(TransactionDraft(), RecordKind.REMINDER, {"title": "x"})

    assert exc_info.value.draft_kind == "transaction"
    assert exc_info.value.slots_kind == "reminder"


def test_draft_from_dict_uses_kind_tag() -> None:
    draft = draft_from_dict({"kind": "reminder", "title": "call the bank"})
    assert isinstance(draft, ReminderDraft)


def test_classified_intent_actionable() -> None:
    assert ClassifiedIntent(kind=RecordKind.TRANSACTION, confidence=0.9).is_actionable(0.5)
    assert not ClassifiedIntent(kind=RecordKind.TRANSACTION, confidence=0.3).is_actionable(0.5)
    assert not ClassifiedIntent.unknown().is_actionable(0.0)
