"""Tests for the deterministic utterance parser."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from voxledger.assistant import slots as fields
from voxledger.assistant.drafts import AttendanceDraft, RecordKind, TransactionDraft
from voxledger.assistant.parser import (
    PARSER_CONFIDENCE,
    detect_categories,
    detect_payment_method,
    detect_provider,
    extract_amount,
    extract_description,
    is_cancel,
    parse,
    parse_answer,
    parse_schedule,
    parse_wage,
    query_slots,
)

TODAY = date(2026, 10, 16)


# ── Amounts ───────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("paid maid 2000 rupees", Decimal("2000")),
        ("spent Rs. 1,500 on vegetables", Decimal("1500")),
        ("₹250.50 for medicine", Decimal("250.50")),
        ("electricity bill 1,20,000", Decimal("120000")),
        ("gave the driver two thousand five hundred", Decimal("2500")),
        ("paid 5k for repair", Decimal("5000")),
    ],
)
def test_extract_amount(text: str, expected: Decimal) -> None:
    assert extract_amount(text) == expected


def test_quantities_and_ordinals_are_not_amounts() -> None:
    assert extract_amount("she comes 3 days a week for 2 hours") is None
    assert extract_amount("on the 5th") is None


def test_currency_marked_amount_wins_over_bare_number() -> None:
    assert extract_amount("paid 2 people 300 rupees") == Decimal("300")


# ── Vocabulary detection ──────────────────────────────────────────────────────


def test_detect_provider_with_adjacent_name() -> None:
    assert detect_provider("paid maid Lakshmi 2000") == ("maid", "Lakshmi")
    assert detect_provider("paid the maid named lakshmi") == ("maid", "Lakshmi")
    assert detect_provider("Raju the driver did not come") == ("driver", "Raju")


def test_detect_provider_without_name() -> None:
    assert detect_provider("paid maid 2000 rupees") == ("maid", None)
    assert detect_provider("bought rice") is None


def test_detect_categories_union_and_logbook() -> None:
    assert detect_categories("bought vegetables and medicine") == ["groceries", "medical"]
    assert detect_categories("paid maid 2000") == ["logbook"]
    assert detect_categories("something else") == ["miscellaneous"]


def test_detect_payment_method() -> None:
    assert detect_payment_method("paid via gpay") == "upi"
    assert detect_payment_method("gave cash") == "cash"
    assert detect_payment_method("paid by cheque") == "cheque"
    assert detect_payment_method("paid 200") is None


def test_extract_description_strips_amount_and_verbs() -> None:
    assert extract_description("paid maid 2000 rupees") == "maid"
    assert extract_description("spent 500 on vegetables yesterday by upi") == "vegetables"


def test_parse_wage_and_schedule() -> None:
    assert parse_wage("2000 a month", "maid") == {"amount": Decimal("2000"), "frequency": "monthly"}
    assert parse_wage("2000", "maid") is None
    assert parse_wage("2000", "nurse", require_frequency=False) == {
        "amount": Decimal("2000"),
        "frequency": "daily",
    }
    assert parse_schedule("she comes 3 times a week for 2 hours") == {
        "visits_per_week": 3,
        "hours_per_visit": 2.0,
    }


@pytest.mark.parametrize("text", ["cancel", "never mind", "forget it", "stop", "no, cancel that"])
def test_is_cancel(text: str) -> None:
    assert is_cancel(text)


def test_cancel_must_lead_the_utterance() -> None:
    assert not is_cancel("paid for the bus stop repair")


# ── parse() ───────────────────────────────────────────────────────────────────


def test_parse_provider_payment_without_name() -> None:
    intent = parse("paid maid 2000 rupees", TODAY)

    assert intent.kind == RecordKind.TRANSACTION
    assert intent.confidence == PARSER_CONFIDENCE
    assert intent.slots["amount"] == Decimal("2000")
    assert intent.slots["type"] == "expense"
    assert intent.slots["categories"] == ["logbook"]
    assert intent.slots["service_provider"] == {"type": "maid"}
    assert intent.missing_fields == [fields.PROVIDER_NAME, fields.PROVIDER_WAGE]


def test_parse_provider_payment_description_drops_the_provider() -> None:
    named = parse("paid maid Lakshmi 2000", TODAY)
    assert named.slots["description"] == "maid payment"
    assert named.slots["service_provider"] == {"type": "maid", "name": "Lakshmi"}

    with_purpose = parse("paid maid Lakshmi 2000 for cleaning", TODAY)
    assert with_purpose.slots["description"] == "cleaning"


def test_parse_unmatched_description_is_miscellaneous() -> None:
    intent = parse("spent 300 on stationery", TODAY)
    assert intent.slots["description"] == "stationery"
    assert intent.slots["categories"] == ["miscellaneous"]


def test_parse_amount_only_leaves_categories_to_the_description() -> None:
    intent = parse("paid 2000", TODAY)
    assert "description" not in intent.slots
    assert "categories" not in intent.slots
    assert intent.missing_fields == [fields.DESCRIPTION]


def test_parse_reminder_title_and_due_date() -> None:
    intent = parse("remind me to pay electricity bill tomorrow", TODAY)

    assert intent.kind == RecordKind.REMINDER
    assert intent.slots["title"] == "pay electricity bill"
    assert intent.slots["due_date"] == date(2026, 10, 17)
    assert intent.missing_fields == []


def test_parse_recurring_reminder_with_amount() -> None:
    intent = parse("remind me to pay the maid 2000 rupees every month on 1st November", TODAY)

    assert intent.kind == RecordKind.REMINDER
    assert intent.slots["due_date"] == date(2026, 11, 1)
    assert intent.slots["recurring"] is True
    assert intent.slots["frequency"] == "monthly"
    assert intent.slots["amount"] == Decimal("2000")


def test_parse_attendance() -> None:
    intent = parse("maid Lakshmi did not come today", TODAY)

    assert intent.kind == RecordKind.ATTENDANCE
    assert intent.slots["provider_type"] == "maid"
    assert intent.slots["name"] == "Lakshmi"
    assert intent.slots["status"] == "absent"
    assert intent.slots["date"] == TODAY
    assert intent.missing_fields[0] == fields.WAGE


def test_parse_query() -> None:
    intent = parse("how much did I spend on groceries last month", TODAY)

    assert intent.kind == RecordKind.QUERY
    assert intent.slots["period"] == "last_month"
    assert intent.slots["category"] == "groceries"
    assert intent.slots["query_type"] == "expenses"


def test_query_slots_provider_payments() -> None:
    slots = query_slots("how much did I pay the driver this month")
    assert slots["query_type"] == "provider_payments"
    assert slots["provider_type"] == "driver"


def test_parse_unresolved_is_unknown() -> None:
    intent = parse("hello there", TODAY)
    assert intent.kind == RecordKind.UNKNOWN
    assert intent.confidence == 0.0


def test_parse_empty_is_unknown() -> None:
    assert parse("   ", TODAY).kind == RecordKind.UNKNOWN


# ── parse_answer() ────────────────────────────────────────────────────────────


def test_answer_provider_name() -> None:
    draft = TransactionDraft(amount=Decimal("2000"), service_provider={"type": "maid"})
    assert parse_answer(draft, fields.PROVIDER_NAME, "Lakshmi", TODAY) == {
        "service_provider": {"name": "Lakshmi"}
    }
    assert parse_answer(draft, fields.PROVIDER_NAME, "her name is lakshmi", TODAY) == {
        "service_provider": {"name": "Lakshmi"}
    }


@pytest.mark.parametrize(
    "text",
    [
        "how much did I spend this month",
        "remind me to pay electricity bill tomorrow",
        "spent 300 on medicine",
        "Lakshmi comes every day at seven",
        "I am not sure",
    ],
)
def test_answer_provider_name_rejects_other_requests(text: str) -> None:
    draft = TransactionDraft(amount=Decimal("2000"), service_provider={"type": "maid"})
    assert parse_answer(draft, fields.PROVIDER_NAME, text, TODAY) is None


def test_answer_attendance_name_accepts_two_words() -> None:
    draft = AttendanceDraft(provider_type="driver", status="absent")
    assert parse_answer(draft, fields.NAME, "Raju Kumar.", TODAY) == {"name": "Raju Kumar"}
    assert parse_answer(draft, fields.NAME, "what did I pay him", TODAY) is None


def test_answer_description_brings_categories() -> None:
    draft = TransactionDraft(amount=Decimal("450"))
    assert parse_answer(draft, fields.DESCRIPTION, "vegetables", TODAY) == {
        "description": "vegetables",
        "categories": ["groceries"],
    }
    assert parse_answer(draft, fields.DESCRIPTION, "stationery", TODAY) == {
        "description": "stationery",
        "categories": ["miscellaneous"],
    }


def test_answer_provider_wage_defaults_frequency() -> None:
    draft = TransactionDraft(amount=Decimal("2000"), service_provider={"type": "maid", "name": "Lakshmi"})
    answer = parse_answer(draft, fields.PROVIDER_WAGE, "2000", TODAY)
    assert answer == {"service_provider": {"wage": {"amount": Decimal("2000"), "frequency": "monthly"}}}


def test_answer_amount_accepts_bare_number() -> None:
    draft = TransactionDraft(description="vegetables")
    assert parse_answer(draft, fields.AMOUNT, "450", TODAY) == {"amount": Decimal("450")}
    assert parse_answer(draft, fields.AMOUNT, "I don't know", TODAY) is None


def test_answer_schedule_fields() -> None:
    draft = AttendanceDraft(provider_type="maid", name="Lakshmi")
    assert parse_answer(draft, fields.VISITS_PER_WEEK, "six", TODAY) == {
        "wage": {"schedule": {"visits_per_week": 6}}
    }
    assert parse_answer(draft, fields.HOURS_PER_VISIT, "two and a half hours", TODAY) == {
        "wage": {"schedule": {"hours_per_visit": 2.5}}
    }


def test_answer_status_yes_no() -> None:
    draft = AttendanceDraft(provider_type="maid", name="Lakshmi")
    assert parse_answer(draft, fields.STATUS, "yes she came", TODAY) == {"status": "present"}
    assert parse_answer(draft, fields.STATUS, "no", TODAY) == {"status": "absent"}
    assert parse_answer(draft, fields.STATUS, "hmm", TODAY) is None


def test_answer_due_date_prefers_future() -> None:
    draft_answer = parse_answer(
        TransactionDraft(), fields.DUE_DATE, "on monday", TODAY,
    )
    assert draft_answer == {"due_date": date(2026, 10, 19)}
