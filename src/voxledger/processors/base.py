"""Shared processor types and the provider rows common to several processors."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.drafts import Wage
from voxledger.ledger.operations import StoreOperation, provider_id, wage_id


@dataclass
class RouteResult:
    """What a processor produced for one record."""

    #: Confirmation or answer to read back to the user.
    response_text: str

    #: Rows to write, in order.  Empty for queries.
    store_operations: list[StoreOperation] = field(default_factory=list)

    #: Id of the primary row (transaction, attendance log or reminder).
    record_id: uuid.UUID | None = None


class Processor(Protocol):
    """Anything that can handle one kind of completed record."""

    async def process(
        self,
        user_id: str,
        record: Any,
        session: AsyncSession | None,
        today: date,
    ) -> RouteResult: ...


def provider_operations(
    user_id: str,
    provider_type: str,
    name: str,
    wage: Wage | None,
    today: date,
) -> tuple[uuid.UUID, list[StoreOperation]]:
    """Build the provider upsert and, when the wage is known, the wage upsert.

    Returns:
        ``(service_provider_id, operations)``.
    """
    sp_id = provider_id(user_id, provider_type, name)
    ops = [
        StoreOperation(
            table="service_providers",
            operation="upsert",
            data={"id": sp_id, "user_id": user_id, "provider_type": provider_type, "name": name},
        )
    ]
    if wage is not None and wage.is_set():
        schedule = wage.schedule
        ops.append(
            StoreOperation(
                table="service_provider_wages",
                operation="upsert",
                data={
                    "id": wage_id(sp_id),
                    "service_provider_id": sp_id,
                    "amount": wage.amount,
                    "frequency": str(wage.frequency),
                    "visits_per_week": schedule.visits_per_week if schedule else None,
                    "hours_per_visit": schedule.hours_per_visit if schedule else None,
                    "effective_from": today,
                },
            )
        )
    return sp_id, ops
