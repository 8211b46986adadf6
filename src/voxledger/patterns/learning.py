"""Best-effort pattern learning after a record is stored.

Loads the user's recent history, runs the :class:`PatternDetector`, and
saves relationships and patterns.  Everything runs inside a SAVEPOINT so a
failure rolls back only the learning writes: it is logged and the
user's record stays committed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.config import settings
from voxledger.ledger import repository
from voxledger.ledger.models import AttendanceLog, Transaction
from voxledger.ledger.operations import StoreOperation
from voxledger.patterns.detector import EventPattern, HistoryRecord, PatternDetector, PatternType

logger = logging.getLogger(__name__)


def _at(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


# ── Conversions ───────────────────────────────────────────────────────────────


def record_from_operations(operations: list[StoreOperation]) -> HistoryRecord | None:
    """Describe the primary row of a processor's operations for the detector.

    Returns ``None`` for batches without a transaction or attendance row
    (reminders are not learned from).
    """
    for op in operations:
        if op.table == "transactions":
            data = op.data
            categories = tuple(
                o.data["category"]
                for o in operations
                if o.table == "transaction_categories" and o.data.get("transaction_id") == data["id"]
            )
            return HistoryRecord(
                id=data["id"],
                kind="transaction",
                occurred_at=_at(data["event_date"]),
                amount=Decimal(str(data["amount"])),
                categories=categories,
                description=data.get("description"),
                service_provider_id=data.get("service_provider_id"),
            )
        if op.table == "attendance_logs":
            data = op.data
            return HistoryRecord(
                id=data["id"],
                kind="attendance",
                occurred_at=_at(data["event_date"]),
                service_provider_id=data["service_provider_id"],
            )
    return None


def history_from_rows(
    transactions: list[Transaction],
    attendance: list[AttendanceLog],
) -> list[HistoryRecord]:
    """Convert stored rows into detector records, oldest first."""
    records = [
        HistoryRecord(
            id=row.id,
            kind="transaction",
            occurred_at=_at(row.event_date),
            amount=row.amount,
            categories=tuple(c.category for c in row.categories),
            description=row.description,
            service_provider_id=row.service_provider_id,
        )
        for row in transactions
    ]
    records.extend(
        HistoryRecord(
            id=row.id,
            kind="attendance",
            occurred_at=_at(row.event_date),
            service_provider_id=row.service_provider_id,
        )
        for row in attendance
    )
    return sorted(records, key=lambda r: r.occurred_at)


def describe_patterns(patterns: list[EventPattern]) -> str | None:
    """Return a short sentence about a regular payment, if one was found."""
    for pattern in patterns:
        label = pattern.metadata.frequency_label
        if pattern.type == PatternType.RECURRING and label and label != "irregular":
            return f"This looks like a regular {label} payment."
    return None


# ── Learning ──────────────────────────────────────────────────────────────────


async def learn_from_operations(
    session: AsyncSession,
    user_id: str,
    operations: list[StoreOperation],
    detector: PatternDetector | None = None,
) -> list[EventPattern]:
    """Detect and persist patterns for the record *operations* just stored.

    Never raises: any failure is logged and an empty list returned.

    Args:
        session: Session the record was written in (caller manages commit).
        user_id: Owner of the record.
        operations: The operations just applied.
        detector: Detector to use (defaults to one built from settings).

    Returns:
        The patterns detected, or ``[]`` on failure.
    """
    current = record_from_operations(operations)
    if current is None:
        return []
    detector = detector or PatternDetector()

    try:
        async with session.begin_nested():
            limit = settings.pattern_history_limit
            history = history_from_rows(
                await repository.get_recent_transactions(session, user_id, limit=limit),
                await repository.get_recent_attendance(session, user_id, limit=limit),
            )
            history = [r for r in history if r.id != current.id]

            for rel in detector.relationships(current, history):
                await repository.save_event_relationship(
                    session,
                    user_id=user_id,
                    primary_id=rel.primary_id,
                    related_id=rel.related_id,
                    relationship_type=str(rel.relationship_type),
                    strength=rel.strength,
                )

            patterns = detector.detect(current, history)
            for pattern in patterns:
                await repository.upsert_learning_pattern(
                    session,
                    user_id=user_id,
                    pattern_type=str(pattern.type),
                    pattern_key=pattern.metadata.category or "general",
                    confidence=pattern.confidence,
                    pattern_data=pattern.model_dump(mode="json"),
                )
    except Exception:
        logger.exception("Pattern learning failed for user %s (record %s)", user_id, current.id)
        return []

    if patterns:
        logger.info(
            "Learned %d pattern(s) for user %s: %s",
            len(patterns), user_id, ", ".join(str(p.type) for p in patterns),
        )
    return patterns

