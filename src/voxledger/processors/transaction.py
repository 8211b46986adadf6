"""Transaction processor: turns a complete transaction draft into rows."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.dates import format_indian_date
from voxledger.assistant.drafts import TransactionDraft
from voxledger.ledger.operations import StoreOperation, new_id
from voxledger.processors.base import RouteResult, provider_operations
from voxledger.processors.formatters import format_inr

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "miscellaneous"
DEFAULT_PAYMENT_METHOD = "cash"
DEFAULT_TYPE = "expense"

_METHOD_LABELS: dict[str, str] = {
    "upi": "UPI",
    "cash": "cash",
    "card": "card",
    "bank_transfer": "bank transfer",
    "cheque": "cheque",
}


def confirmation_text(draft: TransactionDraft, today: date) -> str:
    """Build the read-back sentence for a stored transaction.

    Examples: ``Paid ₹2,000 to Lakshmi (maid).``,
    ``Received ₹5,000 for pension via bank transfer on 1 October 2026.``
    """
    verb = "Received" if draft.type == "income" else "Paid"
    text = f"{verb} {format_inr(draft.amount)}"

    provider = draft.service_provider
    if provider is not None and provider.type and provider.name:
        preposition = "from" if draft.type == "income" else "to"
        text += f" {preposition} {provider.name} ({provider.type})"
    elif draft.description:
        text += f" for {draft.description}"

    if draft.payment_method:
        text += f" via {_METHOD_LABELS.get(draft.payment_method, draft.payment_method)}"
    if draft.date is not None and draft.date != today:
        text += f" on {format_indian_date(draft.date)}"
    return text + "."


class TransactionProcessor:
    """Store an expense or income, its categories and any provider it names."""

    async def process(
        self,
        user_id: str,
        record: TransactionDraft,
        session: AsyncSession | None,
        today: date,
    ) -> RouteResult:
        """Build the store operations and confirmation for *record*.

        Operations, in order: provider upsert and wage upsert (when a named
        provider is attached), the ``transactions`` row, then one
        ``transaction_categories`` row per category.

        Args:
            user_id: Owner of the transaction.
            record: A complete transaction draft.
            session: Unused; transactions are built without reads.
            today: Reference day for the default date.

        Returns:
            A :class:`RouteResult` with the confirmation and operations.
        """
        ops: list[StoreOperation] = []
        sp_id = None
        provider = record.service_provider
        if provider is not None and provider.type and provider.name:
            sp_id, provider_ops = provider_operations(user_id, provider.type, provider.name, provider.wage, today)
            ops.extend(provider_ops)

        tx_id = new_id()
        ops.append(
            StoreOperation(
                table="transactions",
                data={
                    "id": tx_id,
                    "user_id": user_id,
                    "amount": record.amount,
                    "type": record.type or DEFAULT_TYPE,
                    "description": record.description,
                    "payment_method": record.payment_method or DEFAULT_PAYMENT_METHOD,
                    "event_date": record.date or today,
                    "service_provider_id": sp_id,
                },
            )
        )
        for category in record.categories or [DEFAULT_CATEGORY]:
            ops.append(
                StoreOperation(
                    table="transaction_categories",
                    data={"id": new_id(), "transaction_id": tx_id, "category": category},
                )
            )

        logger.debug("Transaction %s for user %s: %s", tx_id, user_id, record.model_dump(exclude_none=True))
        return RouteResult(
            response_text=confirmation_text(record, today),
            store_operations=ops,
            record_id=tx_id,
        )
