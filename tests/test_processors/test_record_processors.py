"""Tests for the transaction, attendance and reminder processors."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from voxledger.assistant.drafts import AttendanceDraft, ReminderDraft, TransactionDraft
from voxledger.ledger.operations import provider_id, wage_id
from voxledger.processors.attendance import AttendanceProcessor
from voxledger.processors.reminder import ReminderProcessor, confirmation_text as reminder_text
from voxledger.processors.transaction import TransactionProcessor, confirmation_text as transaction_text

TODAY = date(2026, 10, 16)
USER = "senior-1"


def _lakshmi_wage() -> dict:
    return {
        "amount": Decimal("2000"),
        "frequency": "monthly",
        "schedule": {"visits_per_week": 6, "hours_per_visit": 2.0},
    }


# ── Transactions ──────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_transaction_defaults() -> None:
    draft = TransactionDraft(amount=Decimal("450"), description="vegetables")

    result = await TransactionProcessor().process(USER, draft, None, TODAY)

    assert result.response_text == "Paid ₹450 for vegetables."
    tx_op, cat_op = result.store_operations
    assert tx_op.table == "transactions"
    assert tx_op.operation == "insert"
    assert tx_op.data["type"] == "expense"
    assert tx_op.data["payment_method"] == "cash"
    assert tx_op.data["event_date"] == TODAY
    assert tx_op.data["service_provider_id"] is None
    assert tx_op.data["id"] == result.record_id
    assert cat_op.data == {"id": cat_op.data["id"], "transaction_id": result.record_id, "category": "miscellaneous"}


@pytest.mark.asyncio
async def test_transaction_with_provider_writes_provider_and_wage() -> None:
    draft = TransactionDraft(
        amount=Decimal("2000"),
        type="expense",
        description="maid",
        categories=["logbook"],
        service_provider={"type": "maid", "name": "Lakshmi", "wage": _lakshmi_wage()},
    )

    result = await TransactionProcessor().process(USER, draft, None, TODAY)

    assert result.response_text == "Paid ₹2,000 to Lakshmi (maid)."
    sp_op, wage_op, tx_op, cat_op = result.store_operations
    sp_id = provider_id(USER, "maid", "Lakshmi")

    assert sp_op.table == "service_providers"
    assert sp_op.operation == "upsert"
    assert sp_op.data == {"id": sp_id, "user_id": USER, "provider_type": "maid", "name": "Lakshmi"}

    assert wage_op.table == "service_provider_wages"
    assert wage_op.operation == "upsert"
    assert wage_op.data["id"] == wage_id(sp_id)
    assert wage_op.data["frequency"] == "monthly"
    assert wage_op.data["visits_per_week"] == 6
    assert wage_op.data["effective_from"] == TODAY

    assert tx_op.data["service_provider_id"] == sp_id
    assert cat_op.data["category"] == "logbook"


@pytest.mark.asyncio
async def test_transaction_one_category_row_each() -> None:
    draft = TransactionDraft(amount=Decimal("900"), description="vegetables and medicine", categories=["groceries", "medical"])

    result = await TransactionProcessor().process(USER, draft, None, TODAY)

    categories = [op.data["category"] for op in result.store_operations if op.table == "transaction_categories"]
    assert categories == ["groceries", "medical"]


def test_transaction_confirmation_variants() -> None:
    income = TransactionDraft(
        amount=Decimal("5000"),
        type="income",
        description="pension",
        payment_method="bank_transfer",
        date=date(2026, 10, 1),
    )
    assert transaction_text(income, TODAY) == "Received ₹5,000 for pension via bank transfer on 1 October 2026."

    upi_today = TransactionDraft(amount=Decimal("250.50"), description="medicine", payment_method="upi", date=TODAY)
    assert transaction_text(upi_today, TODAY) == "Paid ₹250.50 for medicine via UPI."


# ── Attendance ────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_attendance_today() -> None:
    draft = AttendanceDraft(provider_type="maid", name="Lakshmi", status="absent", wage=_lakshmi_wage())

    result = await AttendanceProcessor().process(USER, draft, None, TODAY)

    assert result.response_text == "Recorded Lakshmi (maid) as absent today."
    tables = [op.table for op in result.store_operations]
    assert tables == ["service_providers", "service_provider_wages", "attendance_logs"]
    log = result.store_operations[-1].data
    assert log["event_date"] == TODAY
    assert log["status"] == "absent"
    assert log["service_provider_id"] == provider_id(USER, "maid", "Lakshmi")


@pytest.mark.asyncio
async def test_attendance_past_day() -> None:
    draft = AttendanceDraft(
        provider_type="driver", name="Raju", status="present", date=date(2026, 10, 14), wage=_lakshmi_wage(),
    )

    result = await AttendanceProcessor().process(USER, draft, None, TODAY)

    assert result.response_text == "Recorded Raju (driver) as present on 14 October 2026."


def test_provider_id_ignores_name_case() -> None:
    assert provider_id(USER, "maid", "Lakshmi") == provider_id(USER, "maid", " lakshmi ")
    assert provider_id(USER, "maid", "Lakshmi") != provider_id("other", "maid", "Lakshmi")


# ── Reminders ─────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_reminder_operation() -> None:
    draft = ReminderDraft(title="pay electricity bill", due_date=date(2026, 10, 17))

    result = await ReminderProcessor().process(USER, draft, None, TODAY)

    assert result.response_text == "Sure, I'll remind you to pay electricity bill on 17 October 2026."
    (op,) = result.store_operations
    assert op.table == "reminders"
    assert op.data["recurring"] is False
    assert op.data["status"] == "pending"
    assert op.data["id"] == result.record_id


def test_reminder_confirmation_variants() -> None:
    recurring = ReminderDraft(
        title="pay the maid",
        due_date=date(2026, 11, 1),
        amount=Decimal("2000"),
        recurring=True,
        frequency="monthly",
    )
    assert reminder_text(recurring) == (
        "Sure, I'll remind you to pay the maid on 1 November 2026 and every month after that. Amount: ₹2,000."
    )

    topic = ReminderDraft(title="doctor appointment", due_date=date(2026, 10, 20))
    assert reminder_text(topic) == "Sure, I'll remind you about doctor appointment on 20 October 2026."
