"""Dispatch completed records to their processor.

Each processor turns one complete draft (or, for queries, the query
slots) into a :class:`~voxledger.processors.base.RouteResult`: the
confirmation sentence plus the store operations to write.  Processors are
deterministic and never call the LLM.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant.drafts import RecordKind
from voxledger.processors.attendance import AttendanceProcessor
from voxledger.processors.base import Processor, RouteResult
from voxledger.processors.query import QueryProcessor
from voxledger.processors.reminder import ReminderProcessor
from voxledger.processors.transaction import TransactionProcessor

logger = logging.getLogger(__name__)


def default_processors() -> dict[RecordKind, Processor]:
    """Return the built-in processor for every routable kind."""
    return {
        RecordKind.TRANSACTION: TransactionProcessor(),
        RecordKind.ATTENDANCE: AttendanceProcessor(),
        RecordKind.REMINDER: ReminderProcessor(),
        RecordKind.QUERY: QueryProcessor(),
    }


class ProcessorRouter:
    """Route a completed record to the processor registered for its kind.

    Args:
        processors: Kind → processor map (defaults to the four built-ins).
        today: Callable returning the reference day for defaults.
    """

    def __init__(
        self,
        processors: dict[RecordKind, Processor] | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._processors = processors if processors is not None else default_processors()
        self._today = today

    async def route(
        self,
        kind: RecordKind,
        user_id: str,
        record: Any,
        session: AsyncSession | None = None,
    ) -> RouteResult:
        """Process *record* of *kind* for *user_id*.

        Args:
            kind: The record kind.
            user_id: Owner of the record.
            record: A complete draft, or the query slots for ``query``.
            session: Database session, needed by the query processor only.

        Raises:
            ValueError: If no processor handles *kind*.
        """
        processor = self._processors.get(kind)
        if processor is None:
            raise ValueError(f"No processor for kind: {kind}")
        result = await processor.process(user_id, record, session, self._today())
        logger.info(
            "Routed %s for user %s: %d store operation(s)",
            kind, user_id, len(result.store_operations),
        )
        return result
