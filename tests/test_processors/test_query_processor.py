"""Tests for the query processor with the repository patched out."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from voxledger.processors.query import NO_STORE_REPLY, QueryProcessor

TODAY = date(2026, 10, 16)
USER = "senior-1"


def _row(**kwargs) -> MagicMock:
    row = MagicMock()
    for key, value in kwargs.items():
        setattr(row, key, value)
    return row


@pytest.mark.asyncio
async def test_no_session_is_answered_politely() -> None:
    result = await QueryProcessor().process(USER, {"query_type": "expenses"}, None, TODAY)
    assert result.response_text == NO_STORE_REPLY
    assert result.store_operations == []


@pytest.mark.asyncio
async def test_expenses_this_month_by_default() -> None:
    session = AsyncMock()
    with patch(
        "voxledger.ledger.repository.sum_transactions",
        new=AsyncMock(return_value=(Decimal("12500"), 1)),
    ) as mock_sum:
        result = await QueryProcessor().process(USER, {}, session, TODAY)

    assert result.response_text == "You spent ₹12,500 this month, across 1 payment."
    kwargs = mock_sum.call_args.kwargs
    assert kwargs["date_from"] == date(2026, 10, 1)
    assert kwargs["date_to"] == TODAY
    assert kwargs["tx_type"] == "expense"
    assert kwargs["category"] is None


@pytest.mark.asyncio
async def test_no_expenses_in_category() -> None:
    session = AsyncMock()
    with patch("voxledger.ledger.repository.sum_transactions", new=AsyncMock(return_value=(Decimal("0"), 0))):
        result = await QueryProcessor().process(
            USER, {"query_type": "expenses", "period": "last_week", "category": "home_utilities"}, session, TODAY,
        )

    assert result.response_text == "I found no expenses on home utilities last week."


@pytest.mark.asyncio
async def test_income_total() -> None:
    session = AsyncMock()
    with patch(
        "voxledger.ledger.repository.sum_transactions",
        new=AsyncMock(return_value=(Decimal("25000"), 2)),
    ) as mock_sum:
        result = await QueryProcessor().process(
            USER, {"query_type": "income", "period": "this_year"}, session, TODAY,
        )

    assert result.response_text == "You received ₹25,000 this year."
    assert mock_sum.call_args.kwargs["tx_type"] == "income"
    assert mock_sum.call_args.kwargs["date_from"] == date(2026, 1, 1)


@pytest.mark.asyncio
async def test_provider_payments() -> None:
    session = AsyncMock()
    with patch(
        "voxledger.ledger.repository.sum_provider_payments",
        new=AsyncMock(return_value=(Decimal("4000"), 2)),
    ) as mock_sum:
        result = await QueryProcessor().process(
            USER,
            {"query_type": "provider_payments", "provider_type": "maid", "period": "last_month"},
            session,
            TODAY,
        )

    assert result.response_text == "You paid ₹4,000 to the maid last month, in 2 payments."
    assert mock_sum.call_args.kwargs["name"] is None


@pytest.mark.asyncio
async def test_named_provider_without_payments() -> None:
    session = AsyncMock()
    with patch(
        "voxledger.ledger.repository.sum_provider_payments",
        new=AsyncMock(return_value=(Decimal("0"), 0)),
    ):
        result = await QueryProcessor().process(
            USER,
            {"query_type": "provider_payments", "provider_type": "driver", "provider_name": "Raju"},
            session,
            TODAY,
        )

    assert result.response_text == "I found no payments to Raju this month."


@pytest.mark.asyncio
async def test_recent_transactions() -> None:
    rows = [
        _row(amount=Decimal("450"), type="expense", description="vegetables", event_date=date(2026, 10, 15)),
        _row(amount=Decimal("5000"), type="income", description=None, event_date=date(2026, 10, 1)),
    ]
    session = AsyncMock()
    with patch("voxledger.ledger.repository.get_transactions_between", new=AsyncMock(return_value=rows)):
        result = await QueryProcessor().process(USER, {"query_type": "recent"}, session, TODAY)

    assert result.response_text == (
        "Your recent transactions: ₹450 paid for vegetables on 15 October 2026; "
        "₹5,000 received for a payment on 1 October 2026."
    )


@pytest.mark.asyncio
async def test_upcoming_reminders() -> None:
    rows = [_row(title="pay electricity bill", due_date=date(2026, 10, 17))]
    session = AsyncMock()
    with patch(
        "voxledger.ledger.repository.get_pending_reminders",
        new=AsyncMock(return_value=rows),
    ) as mock_reminders:
        result = await QueryProcessor().process(USER, {"query_type": "reminders"}, session, TODAY)

    assert result.response_text == "You have 1 upcoming reminder: pay electricity bill on 17 October 2026."
    assert mock_reminders.call_args.kwargs["from_date"] == TODAY


@pytest.mark.asyncio
async def test_no_reminders() -> None:
    session = AsyncMock()
    with patch("voxledger.ledger.repository.get_pending_reminders", new=AsyncMock(return_value=[])):
        result = await QueryProcessor().process(USER, {"query_type": "reminders"}, session, TODAY)
    assert result.response_text == "You have no upcoming reminders."


@pytest.mark.asyncio
async def test_database_error_is_answered_politely() -> None:
    session = AsyncMock()
    with patch(
        "voxledger.ledger.repository.sum_transactions",
        new=AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down"))),
    ):
        result = await QueryProcessor().process(USER, {"query_type": "expenses"}, session, TODAY)

    assert result.response_text == NO_STORE_REPLY
