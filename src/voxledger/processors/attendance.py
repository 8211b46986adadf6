"""Attendance processor: records whether a provider came on a given day."""

from __future__ import annotations

from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.dates import format_indian_date
from voxledger.assistant.drafts import AttendanceDraft
from voxledger.ledger.operations import StoreOperation, new_id
from voxledger.processors.base import RouteResult, provider_operations


class AttendanceProcessor:
    """Store an attendance log together with the provider and their wage."""

    async def process(
        self,
        user_id: str,
        record: AttendanceDraft,
        session: AsyncSession | None,
        today: date,
    ) -> RouteResult:
        day = record.date or today
        sp_id, ops = provider_operations(user_id, record.provider_type, record.name, record.wage, today)

        log_id = new_id()
        ops.append(
            StoreOperation(
                table="attendance_logs",
                data={
                    "id": log_id,
                    "user_id": user_id,
                    "service_provider_id": sp_id,
                    "event_date": day,
                    "status": record.status,
                },
            )
        )

        when = "today" if day == today else f"on {format_indian_date(day)}"
        text = f"Recorded {record.name} ({record.provider_type}) as {record.status} {when}."
        return RouteResult(response_text=text, store_operations=ops, record_id=log_id)
