"""Reminder processor."""

from __future__ import annotations

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.dates import format_indian_date
from voxledger.assistant.drafts import ReminderDraft
from voxledger.ledger.operations import StoreOperation, new_id
from voxledger.processors.base import RouteResult
from voxledger.processors.formatters import format_inr

# Titles starting with one of these read as "remind you to <title>".
_ACTION_VERBS = frozenset({
    "pay", "call", "buy", "take", "renew", "collect", "give", "book", "check",
    "send", "visit", "submit", "get", "bring", "meet", "recharge", "deposit",
})

_RECURRENCE_UNITS: dict[str, str] = {
    "daily": "day",
    "weekly": "week",
    "monthly": "month",
    "yearly": "year",
}


def confirmation_text(draft: ReminderDraft) -> str:
    """Build the read-back sentence for a stored reminder.

    Example: ``Sure, I'll remind you to pay electricity bill on 17 October 2026.``
    """
    title = (draft.title or "").strip()
    first_word = title.split(" ", 1)[0].lower() if title else ""
    if first_word in _ACTION_VERBS:
        text = f"Sure, I'll remind you to {title}"
    else:
        text = f"Sure, I'll remind you about {title or 'this'}"
    text += f" on {format_indian_date(draft.due_date)}"

    unit = _RECURRENCE_UNITS.get(draft.frequency or "")
    if draft.recurring and unit:
        text += f" and every {unit} after that"
    if draft.amount is not None:
        text += f". Amount: {format_inr(draft.amount)}"
    return text + "."


class ReminderProcessor:
    """Store a reminder as pending."""

    async def process(
        self,
        user_id: str,
        record: ReminderDraft,
        session: AsyncSession | None,
        today: date,
    ) -> RouteResult:
        reminder_id = new_id()
        op = StoreOperation(
            table="reminders",
            data={
                "id": reminder_id,
                "user_id": user_id,
                "title": record.title or "Reminder",
                "due_date": record.due_date,
                "amount": record.amount,
                "recurring": bool(record.recurring),
                "frequency": record.frequency,
                "status": "pending",
            },
        )
        return RouteResult(response_text=confirmation_text(record), store_operations=[op], record_id=reminder_id)
