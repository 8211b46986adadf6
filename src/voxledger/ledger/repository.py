"""Database repository for the assistant's records.

Async functions that apply processor store operations, answer spending
queries, and persist what the pattern detector learns.  Every function
takes an :class:`AsyncSession`; the caller manages commit.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.errors import StoreWriteFailure
from voxledger.ledger.models import (
    AttendanceLog,
    Base,
    ContextLog,
    EventRelationship,
    LearningPattern,
    Reminder,
    ServiceProvider,
    ServiceProviderWage,
    Transaction,
    TransactionCategory,
)
from voxledger.ledger.operations import StoreOperation, pattern_id

#: Tables processors may write, mapped to their ORM models.
TABLE_MODELS: dict[str, type[Base]] = {
    "transactions": Transaction,
    "transaction_categories": TransactionCategory,
    "service_providers": ServiceProvider,
    "service_provider_wages": ServiceProviderWage,
    "attendance_logs": AttendanceLog,
    "reminders": Reminder,
}


# ── Writes ────────────────────────────────────────────────────────────────────


async def apply_store_operations(
    session: AsyncSession,
    operations: list[StoreOperation],
) -> None:
    """Write a processor's store operations in order.

    Inserts are added; upserts are merged by primary key.  The session is
    flushed after every operation so later rows can reference earlier ones.

    Args:
        session: Active async database session (caller manages commit).
        operations: Operations produced by a processor.

    Raises:
        StoreWriteFailure: If a table is unknown or the database rejects a row.
    """
    try:
        for op in operations:
            model = TABLE_MODELS.get(op.table)
            if model is None:
                raise StoreWriteFailure(f"Unknown table: {op.table}")
            row = model(**op.data)
            if op.operation == "upsert":
                await session.merge(row)
            else:
                session.add(row)
            await session.flush()
    except SQLAlchemyError as exc:
        raise StoreWriteFailure(f"{type(exc).__name__}: {exc}") from exc


async def save_context_log(
    session: AsyncSession,
    *,
    user_id: str,
    utterance: str,
    intent: str,
    confidence: float,
    slots: dict[str, Any],
) -> ContextLog:
    """Record a confidently classified utterance in ``context_logs``.

    Args:
        session: Active async database session (caller manages commit).
        user_id: The speaking user.
        utterance: The utterance exactly as received.
        intent: Classified record kind.
        confidence: Classifier or parser confidence.
        slots: JSON-safe slots extracted from the utterance.

    Returns:
        The newly created :class:`ContextLog` instance.
    """
    row = ContextLog(
        user_id=user_id,
        utterance=utterance,
        intent=intent,
        confidence=confidence,
        slots=slots,
    )
    session.add(row)
    await session.flush()
    return row


async def save_event_relationship(
    session: AsyncSession,
    *,
    user_id: str,
    primary_id: uuid.UUID,
    related_id: uuid.UUID,
    relationship_type: str,
    strength: float,
) -> EventRelationship:
    """Persist one relationship between two stored records."""
    row = EventRelationship(
        user_id=user_id,
        primary_id=primary_id,
        related_id=related_id,
        relationship_type=relationship_type,
        strength=strength,
    )
    session.add(row)
    await session.flush()
    return row


async def upsert_learning_pattern(
    session: AsyncSession,
    *,
    user_id: str,
    pattern_type: str,
    pattern_key: str,
    confidence: float,
    pattern_data: dict[str, Any],
) -> LearningPattern:
    """Insert or replace the user's pattern of *pattern_type* for *pattern_key*.

    Args:
        session: Active async database session (caller manages commit).
        user_id: Owner of the pattern.
        pattern_type: ``recurring``, ``category_related`` or ``sequential``.
        pattern_key: What the pattern is about (usually a category).
        confidence: Detector confidence.
        pattern_data: JSON-safe pattern metadata and member ids.

    Returns:
        The merged :class:`LearningPattern` instance.
    """
    row = LearningPattern(
        id=pattern_id(user_id, pattern_type, pattern_key),
        user_id=user_id,
        pattern_type=pattern_type,
        pattern_key=pattern_key,
        confidence=confidence,
        pattern_data=pattern_data,
    )
    merged = await session.merge(row)
    await session.flush()
    return merged


# ── Reads ─────────────────────────────────────────────────────────────────────


async def get_recent_transactions(
    session: AsyncSession,
    user_id: str,
    limit: int = 50,
) -> list[Transaction]:
    """Return the user's most recent transactions, newest first."""
    stmt = (
        select(Transaction)
        .where(Transaction.user_id == user_id)
        .order_by(Transaction.event_date.desc(), Transaction.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_recent_attendance(
    session: AsyncSession,
    user_id: str,
    limit: int = 50,
) -> list[AttendanceLog]:
    """Return the user's most recent attendance logs, newest first."""
    stmt = (
        select(AttendanceLog)
        .where(AttendanceLog.user_id == user_id)
        .order_by(AttendanceLog.event_date.desc(), AttendanceLog.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_provider_wage(
    session: AsyncSession,
    user_id: str,
    provider_type: str,
    name: str,
) -> ServiceProviderWage | None:
    """Look up the current wage of a known provider.

    Args:
        session: Active async database session.
        user_id: Owner of the provider.
        provider_type: e.g. ``"maid"``.
        name: Provider name (case-insensitive).

    Returns:
        The :class:`ServiceProviderWage` row, or ``None`` if the provider
        or their wage is unknown.
    """
    stmt = (
        select(ServiceProviderWage)
        .join(ServiceProvider, ServiceProvider.id == ServiceProviderWage.service_provider_id)
        .where(
            ServiceProvider.user_id == user_id,
            ServiceProvider.provider_type == provider_type,
            ServiceProvider.name.ilike(name),
        )
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def sum_transactions(
    session: AsyncSession,
    user_id: str,
    *,
    date_from: date,
    date_to: date,
    tx_type: str = "expense",
    category: str | None = None,
) -> tuple[Decimal, int]:
    """Return ``(total, count)`` of the user's transactions in a date range.

    Args:
        session: Active async database session.
        user_id: Owner of the transactions.
        date_from: First day included.
        date_to: Last day included.
        tx_type: ``"expense"`` or ``"income"``.
        category: Only transactions carrying this category.
    """
    stmt = select(func.sum(Transaction.amount), func.count(Transaction.id)).where(
        Transaction.user_id == user_id,
        Transaction.type == tx_type,
        Transaction.event_date >= date_from,
        Transaction.event_date <= date_to,
    )
    if category is not None:
        stmt = stmt.where(
            Transaction.id.in_(
                select(TransactionCategory.transaction_id).where(TransactionCategory.category == category)
            )
        )
    result = await session.execute(stmt)
    total, count = result.one()
    return total or Decimal("0"), int(count or 0)


async def get_transactions_between(
    session: AsyncSession,
    user_id: str,
    *,
    date_from: date,
    date_to: date,
    limit: int = 5,
) -> list[Transaction]:
    """Return the user's transactions in a date range, newest first."""
    stmt = (
        select(Transaction)
        .where(
            Transaction.user_id == user_id,
            Transaction.event_date >= date_from,
            Transaction.event_date <= date_to,
        )
        .order_by(Transaction.event_date.desc(), Transaction.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def sum_provider_payments(
    session: AsyncSession,
    user_id: str,
    *,
    provider_type: str,
    name: str | None = None,
    date_from: date,
    date_to: date,
) -> tuple[Decimal, int]:
    """Return ``(total, count)`` paid to providers of a type (optionally one by name)."""
    stmt = (
        select(func.sum(Transaction.amount), func.count(Transaction.id))
        .join(ServiceProvider, ServiceProvider.id == Transaction.service_provider_id)
        .where(
            Transaction.user_id == user_id,
            ServiceProvider.provider_type == provider_type,
            Transaction.event_date >= date_from,
            Transaction.event_date <= date_to,
        )
    )
    if name is not None:
        stmt = stmt.where(ServiceProvider.name.ilike(name))
    result = await session.execute(stmt)
    total, count = result.one()
    return total or Decimal("0"), int(count or 0)


async def get_pending_reminders(
    session: AsyncSession,
    user_id: str,
    *,
    from_date: date,
    limit: int = 5,
) -> list[Reminder]:
    """Return the user's pending reminders due on or after *from_date*."""
    stmt = (
        select(Reminder)
        .where(
            Reminder.user_id == user_id,
            Reminder.status == "pending",
            Reminder.due_date >= from_date,
        )
        .order_by(Reminder.due_date)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
