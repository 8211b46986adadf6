"""Tests for completeness rules and clarification questions."""

from __future__ import annotations

from decimal import Decimal

import pytest

from voxledger.assistant import slots as fields
from voxledger.assistant.drafts import (
    AttendanceDraft,
    ClassifiedIntent,
    RecordKind,
    ReminderDraft,
    TransactionDraft,
)


def test_empty_transaction_needs_amount_then_description() -> None:
    assert fields.missing_fields(TransactionDraft()) == [fields.AMOUNT, fields.DESCRIPTION]
    assert fields.next_missing_field(TransactionDraft()) == fields.AMOUNT


def test_provider_payment_needs_name_and_wage() -> None:
    draft = TransactionDraft(amount=Decimal("2000"), description="maid", service_provider={"type": "maid"})
    assert fields.missing_fields(draft) == [fields.PROVIDER_NAME, fields.PROVIDER_WAGE]


def test_wage_without_frequency_is_not_set() -> None:
    draft = TransactionDraft(
        amount=Decimal("2000"),
        description="maid",
        service_provider={"type": "maid", "name": "Lakshmi", "wage": {"amount": 2000}},
    )
    assert fields.next_missing_field(draft) == fields.PROVIDER_WAGE


def test_attendance_asking_order() -> None:
    assert fields.missing_fields(AttendanceDraft()) == [
        fields.PROVIDER_TYPE,
        fields.NAME,
        fields.WAGE,
        fields.VISITS_PER_WEEK,
        fields.HOURS_PER_VISIT,
        fields.STATUS,
    ]


def test_complete_attendance() -> None:
    draft = AttendanceDraft(
        provider_type="maid",
        name="Lakshmi",
        status="absent",
        wage={
            "amount": 2000,
            "frequency": "monthly",
            "schedule": {"visits_per_week": 6, "hours_per_visit": 2},
        },
    )
    assert fields.is_complete(draft)


def test_reminder_needs_only_due_date() -> None:
    assert fields.missing_fields(ReminderDraft()) == [fields.DUE_DATE]


def test_missing_fields_rejects_non_draft() -> None:
    with pytest.raises(TypeError):
        fields.missing_fields(ClassifiedIntent())


@pytest.mark.parametrize(
    ("draft", "field_name", "expected"),
    [
        (
            TransactionDraft(service_provider={"type": "maid"}),
            fields.PROVIDER_NAME,
            "Could you please specify the maid's name?",
        ),
        (
            TransactionDraft(service_provider={"type": "maid", "name": "Lakshmi"}),
            fields.PROVIDER_WAGE,
            "How much do we pay Lakshmi and how often (daily/weekly/monthly)?",
        ),
        (
            AttendanceDraft(provider_type="driver"),
            fields.STATUS,
            "Was the driver present or absent?",
        ),
        (TransactionDraft(), fields.AMOUNT, "Could you tell me the amount?"),
        (ReminderDraft(), fields.DUE_DATE, "When should I remind you?"),
        (ReminderDraft(), "colour", "Could you provide more details?"),
    ],
)
def test_question_for(draft, field_name: str, expected: str) -> None:
    assert fields.question_for(draft, field_name) == expected


def test_fill_draft_freezes_complete_draft() -> None:
    draft = TransactionDraft(amount=Decimal("450"), description="vegetables")
    filled = fields.fill_draft(draft, RecordKind.TRANSACTION, {"service_provider": {"type": "maid"}})

    assert filled.service_provider is None
    assert fields.is_complete(filled)


def test_fill_draft_merges_incomplete_draft() -> None:
    draft = TransactionDraft(description="vegetables")
    filled = fields.fill_draft(draft, RecordKind.TRANSACTION, {"amount": 450})
    assert filled.amount == Decimal("450")
