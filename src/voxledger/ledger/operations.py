"""Store operations: the write contract between processors and the store.

Processors never touch the database.  They describe the rows a completed
record produces as :class:`StoreOperation` values, and
:func:`voxledger.ledger.repository.apply_store_operations` writes them.
Row ids are generated here so one batch can reference its own rows.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field

# Namespace for ids derived from natural keys (providers, wages, patterns).
_VOXLEDGER_NS = uuid.UUID("5b0c7f0e-2a43-4f7a-9d0c-6c1f3e8a9b21")


class StoreOperation(BaseModel):
    """One row to write.

    ``upsert`` rows carry an id derived from their natural key, so writing
    the same provider twice updates one row instead of adding another.
    """

    table: str
    operation: Literal["insert", "upsert"] = "insert"
    data: dict[str, Any] = Field(default_factory=dict)


def new_id() -> uuid.UUID:
    """Return a fresh random row id."""
    return uuid.uuid4()


def provider_id(user_id: str, provider_type: str, name: str) -> uuid.UUID:
    """Stable id of a user's provider, keyed by type and case-folded name."""
    return uuid.uuid5(_VOXLEDGER_NS, f"provider:{user_id}:{provider_type}:{name.strip().casefold()}")


def wage_id(service_provider_id: uuid.UUID) -> uuid.UUID:
    """Stable id of a provider's current wage row."""
    return uuid.uuid5(_VOXLEDGER_NS, f"wage:{service_provider_id}")


def pattern_id(user_id: str, pattern_type: str, pattern_key: str) -> uuid.UUID:
    """Stable id of a user's learned pattern of one type and key."""
    return uuid.uuid5(_VOXLEDGER_NS, f"pattern:{user_id}:{pattern_type}:{pattern_key}")
