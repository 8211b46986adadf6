"""Behavioral pattern detection over a user's recent records.

Given the record just stored and the user's recent history, the detector
reports:

- **recurring**: other records within ``amount_tolerance`` of the current
  amount, spaced at near-constant intervals (a monthly maid payment).
- **category_related**: several other records sharing a category.
- **sequential**: a run of related records each within
  ``sequential_window_days`` of the previous one.

The three checks are independent; any combination may fire.  The detector
is pure: loading history and persisting results is
:mod:`voxledger.patterns.learning`'s job.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field

from voxledger.config import settings

_MS_PER_DAY = 24 * 60 * 60 * 1000
_WORD_RE = re.compile(r"[a-z]+")


class PatternType(StrEnum):
    RECURRING = "recurring"
    CATEGORY_RELATED = "category_related"
    SEQUENTIAL = "sequential"


class RelationshipType(StrEnum):
    SAME_CATEGORY = "same_category"
    SIMILAR_AMOUNT = "similar_amount"
    TEMPORAL = "temporal"
    PAYMENT_ATTENDANCE_LINK = "payment_attendance_link"


#: Strength recorded for each relationship type.
RELATIONSHIP_STRENGTHS: dict[RelationshipType, float] = {
    RelationshipType.PAYMENT_ATTENDANCE_LINK: 0.9,
    RelationshipType.SAME_CATEGORY: 0.8,
    RelationshipType.SIMILAR_AMOUNT: 0.7,
    RelationshipType.TEMPORAL: 0.5,
}


@dataclass(frozen=True)
class HistoryRecord:
    """A stored transaction or attendance log, as the detector sees it."""

    id: uuid.UUID
    kind: str
    occurred_at: datetime
    amount: Decimal | None = None
    categories: tuple[str, ...] = ()
    description: str | None = None
    service_provider_id: uuid.UUID | None = None


class PatternMetadata(BaseModel):
    frequency_label: str | None = None
    average_amount: Decimal | None = None
    amount_variance: Decimal | None = None
    time_gap_variance_ms: float | None = None
    mean_gap_ms: float | None = None
    category: str | None = None


class EventPattern(BaseModel):
    """A detected pattern.  Derived on demand, stored as the latest per type and key."""

    type: PatternType
    confidence: float = Field(ge=0.0, le=1.0)
    member_record_ids: list[uuid.UUID] = Field(default_factory=list)
    metadata: PatternMetadata = Field(default_factory=PatternMetadata)


class EventRelationship(BaseModel):
    """A link between the current record and one earlier record."""

    primary_id: uuid.UUID
    related_id: uuid.UUID
    relationship_type: RelationshipType
    strength: float


def frequency_label(mean_gap_ms: float) -> str:
    """Name the cadence of a mean gap: monthly, weekly, biweekly or irregular."""
    days = mean_gap_ms / _MS_PER_DAY
    if 28 <= days <= 31:
        return "monthly"
    if 6 <= days <= 8:
        return "weekly"
    if 13 <= days <= 15:
        return "biweekly"
    return "irregular"


def _gap_ms(earlier: HistoryRecord, later: HistoryRecord) -> float:
    return (later.occurred_at - earlier.occurred_at).total_seconds() * 1000


def _words(text: str | None) -> set[str]:
    return set(_WORD_RE.findall(text.lower())) if text else set()


@dataclass
class PatternDetector:
    """Detect recurring, category and sequential patterns.

    Thresholds default to the values in :mod:`voxledger.config`.
    """

    amount_tolerance: float = field(default_factory=lambda: settings.amount_tolerance)
    gap_spread_tolerance: float = field(default_factory=lambda: settings.gap_spread_tolerance)
    recurring_confidence: float = field(default_factory=lambda: settings.recurring_confidence)
    category_confidence: float = field(default_factory=lambda: settings.category_confidence)
    sequential_confidence: float = field(default_factory=lambda: settings.sequential_confidence)
    category_min_matches: int = field(default_factory=lambda: settings.category_min_matches)
    sequential_window_days: int = field(default_factory=lambda: settings.sequential_window_days)
    temporal_window_hours: int = field(default_factory=lambda: settings.temporal_window_hours)

    # ── Similarity ────────────────────────────────────────────────────────

    def similar_amount(self, current: HistoryRecord, other: HistoryRecord) -> bool:
        """True if *other*'s amount is within ``amount_tolerance`` of *current*'s."""
        if current.amount is None or other.amount is None or current.amount == 0:
            return False
        variation = abs(other.amount - current.amount) / current.amount
        return variation <= Decimal(str(self.amount_tolerance))

    def related(self, current: HistoryRecord, history: list[HistoryRecord]) -> list[HistoryRecord]:
        """Return the transactions in *history* related to *current*.

        Related means sharing a category, a similar amount, or more than two
        description words.
        """
        current_words = _words(current.description)
        result = []
        for other in history:
            if other.id == current.id or other.kind != "transaction":
                continue
            if set(current.categories) & set(other.categories):
                result.append(other)
            elif self.similar_amount(current, other):
                result.append(other)
            elif len(current_words & _words(other.description)) > 2:
                result.append(other)
        return result

    # ── Patterns ──────────────────────────────────────────────────────────

    def detect(self, current: HistoryRecord, history: list[HistoryRecord]) -> list[EventPattern]:
        """Run every pattern check for *current* against *history*.

        Args:
            current: The record just stored.
            history: The user's recent records (may include *current*).

        Returns:
            Patterns found, in the order recurring, category, sequential.
        """
        if current.kind != "transaction" or current.amount is None:
            return []
        related = self.related(current, history)
        patterns = [
            self.detect_recurring(current, related),
            self.detect_category(current, related),
            self.detect_sequential(current, related),
        ]
        return [p for p in patterns if p is not None]

    def detect_recurring(self, current: HistoryRecord, related: list[HistoryRecord]) -> EventPattern | None:
        similar = [r for r in related if self.similar_amount(current, r)]
        if len(similar) < 2:
            return None

        members = sorted([current, *similar], key=lambda r: r.occurred_at)
        gaps = [_gap_ms(a, b) for a, b in zip(members, members[1:])]
        mean_gap = sum(gaps) / len(gaps)
        if mean_gap <= 0:
            return None
        spread = max(gaps) - min(gaps)
        if spread / mean_gap > self.gap_spread_tolerance:
            return None

        amounts = [r.amount for r in members if r.amount is not None]
        average = sum(amounts, Decimal("0")) / len(amounts)
        return EventPattern(
            type=PatternType.RECURRING,
            confidence=self.recurring_confidence,
            member_record_ids=[current.id, *(r.id for r in similar)],
            metadata=PatternMetadata(
                frequency_label=frequency_label(mean_gap),
                average_amount=average.quantize(Decimal("0.01")),
                amount_variance=max(abs(r.amount - current.amount) for r in similar),
                time_gap_variance_ms=spread,
                mean_gap_ms=mean_gap,
                category=current.categories[0] if current.categories else None,
            ),
        )

    def detect_category(self, current: HistoryRecord, related: list[HistoryRecord]) -> EventPattern | None:
        best_category: str | None = None
        best_members: list[HistoryRecord] = []
        for category in current.categories:
            members = [r for r in related if category in r.categories]
            if len(members) > len(best_members):
                best_category, best_members = category, members
        if best_category is None or len(best_members) < self.category_min_matches:
            return None
        return EventPattern(
            type=PatternType.CATEGORY_RELATED,
            confidence=self.category_confidence,
            member_record_ids=[current.id, *(r.id for r in best_members)],
            metadata=PatternMetadata(category=best_category, average_amount=current.amount),
        )

    def detect_sequential(self, current: HistoryRecord, related: list[HistoryRecord]) -> EventPattern | None:
        window_ms = self.sequential_window_days * _MS_PER_DAY
        chunks: list[list[HistoryRecord]] = []
        for record in sorted(related, key=lambda r: r.occurred_at):
            if chunks and _gap_ms(chunks[-1][-1], record) <= window_ms:
                chunks[-1].append(record)
            else:
                chunks.append([record])

        longest: list[HistoryRecord] = []
        for chunk in chunks:
            if len(chunk) > len(longest):
                longest = chunk
        if len(longest) < 2:
            return None

        gaps = [_gap_ms(a, b) for a, b in zip(longest, longest[1:])]
        return EventPattern(
            type=PatternType.SEQUENTIAL,
            confidence=self.sequential_confidence,
            member_record_ids=[current.id, *(r.id for r in longest)],
            metadata=PatternMetadata(
                mean_gap_ms=sum(gaps) / len(gaps),
                category=current.categories[0] if current.categories else None,
            ),
        )

    # ── Relationships ─────────────────────────────────────────────────────

    def relationship_type(self, current: HistoryRecord, other: HistoryRecord) -> RelationshipType | None:
        """Classify the strongest link between two records, if any."""
        kinds = {current.kind, other.kind}
        if (
            kinds == {"transaction", "attendance"}
            and current.service_provider_id is not None
            and current.service_provider_id == other.service_provider_id
        ):
            return RelationshipType.PAYMENT_ATTENDANCE_LINK
        if set(current.categories) & set(other.categories):
            return RelationshipType.SAME_CATEGORY
        if self.similar_amount(current, other):
            return RelationshipType.SIMILAR_AMOUNT
        if abs(current.occurred_at - other.occurred_at) <= timedelta(hours=self.temporal_window_hours):
            return RelationshipType.TEMPORAL
        return None

    def relationships(self, current: HistoryRecord, history: list[HistoryRecord]) -> list[EventRelationship]:
        """Link *current* to every record in *history* it relates to."""
        result = []
        for other in history:
            if other.id == current.id:
                continue
            rel_type = self.relationship_type(current, other)
            if rel_type is None:
                continue
            result.append(
                EventRelationship(
                    primary_id=current.id,
                    related_id=other.id,
                    relationship_type=rel_type,
                    strength=RELATIONSHIP_STRENGTHS[rel_type],
                )
            )
        return result
