"""Query processor: answers spending questions from stored records.

Supported questions (``query_type`` slot):

- ``expenses``: total spent in a period, optionally for one category.
- ``income``: total received in a period.
- ``provider_payments``: total paid to a provider type or a named provider.
- ``recent``: the last few transactions in a period.
- ``reminders``: upcoming pending reminders.

Periods: today, yesterday, this/last week, this/last month, this year;
``this_month`` when none is mentioned.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.dates import PERIOD_LABELS, format_indian_date, period_range
from voxledger.ledger import repository
from voxledger.processors.base import RouteResult
from voxledger.processors.formatters import format_inr, humanize

logger = logging.getLogger(__name__)

_RECENT_LIMIT = 5

NO_STORE_REPLY = "Sorry, I can't look that up right now. Please try again in a little while."


class QueryProcessor:
    """Answer a query from the store.  Never writes."""

    async def process(
        self,
        user_id: str,
        record: dict[str, Any],
        session: AsyncSession | None,
        today: date,
    ) -> RouteResult:
        """Answer the query described by *record*.

        Args:
            user_id: The asking user.
            record: Query slots (``query_type``, ``period``, ``category``,
                ``provider_type``, ``provider_name``).
            session: Database session to read from.
            today: Reference day for the period.

        Returns:
            A :class:`RouteResult` with the answer and no store operations.
        """
        if session is None:
            return RouteResult(response_text=NO_STORE_REPLY)

        query_type = record.get("query_type") or "expenses"
        period = record.get("period") or "this_month"
        start, end = period_range(period, today)
        label = PERIOD_LABELS.get(period, "this month")

        try:
            if query_type == "reminders":
                text = await self._reminders(session, user_id, today)
            elif query_type == "provider_payments" and record.get("provider_type"):
                text = await self._provider_payments(session, user_id, record, start, end, label)
            elif query_type == "recent":
                text = await self._recent(session, user_id, start, end, label)
            elif query_type == "income":
                text = await self._totals(session, user_id, start, end, label, tx_type="income")
            else:
                text = await self._totals(
                    session, user_id, start, end, label, category=record.get("category"),
                )
        except SQLAlchemyError:
            logger.exception("Query %s failed for user %s", query_type, user_id)
            text = NO_STORE_REPLY
        return RouteResult(response_text=text)

    async def _totals(
        self,
        session: AsyncSession,
        user_id: str,
        start: date,
        end: date,
        label: str,
        *,
        tx_type: str = "expense",
        category: str | None = None,
    ) -> str:
        total, count = await repository.sum_transactions(
            session, user_id, date_from=start, date_to=end, tx_type=tx_type, category=category,
        )
        if tx_type == "income":
            if not count:
                return f"I found no income {label}."
            return f"You received {format_inr(total)} {label}."
        topic = f" on {humanize(category)}" if category else ""
        if not count:
            return f"I found no expenses{topic} {label}."
        noun = "payment" if count == 1 else "payments"
        return f"You spent {format_inr(total)}{topic} {label}, across {count} {noun}."

    async def _provider_payments(
        self,
        session: AsyncSession,
        user_id: str,
        record: dict[str, Any],
        start: date,
        end: date,
        label: str,
    ) -> str:
        provider_type = record["provider_type"]
        name = record.get("provider_name")
        total, count = await repository.sum_provider_payments(
            session, user_id, provider_type=provider_type, name=name, date_from=start, date_to=end,
        )
        who = name or f"the {provider_type}"
        if not count:
            return f"I found no payments to {who} {label}."
        noun = "payment" if count == 1 else "payments"
        return f"You paid {format_inr(total)} to {who} {label}, in {count} {noun}."

    async def _recent(
        self,
        session: AsyncSession,
        user_id: str,
        start: date,
        end: date,
        label: str,
    ) -> str:
        rows = await repository.get_transactions_between(
            session, user_id, date_from=start, date_to=end, limit=_RECENT_LIMIT,
        )
        if not rows:
            return f"I found no transactions {label}."
        items = []
        for row in rows:
            what = row.description or "a payment"
            verb = "received" if row.type == "income" else "paid"
            items.append(f"{format_inr(row.amount)} {verb} for {what} on {format_indian_date(row.event_date)}")
        return "Your recent transactions: " + "; ".join(items) + "."

    async def _reminders(self, session: AsyncSession, user_id: str, today: date) -> str:
        rows = await repository.get_pending_reminders(session, user_id, from_date=today, limit=_RECENT_LIMIT)
        if not rows:
            return "You have no upcoming reminders."
        noun = "reminder" if len(rows) == 1 else "reminders"
        items = [f"{row.title} on {format_indian_date(row.due_date)}" for row in rows]
        return f"You have {len(rows)} upcoming {noun}: " + "; ".join(items) + "."
