"""Record drafts assembled across conversation turns.

Provides:

- :class:`RecordKind`: the kinds of record an utterance can describe.
- :class:`TransactionDraft`, :class:`AttendanceDraft`,
  :class:`ReminderDraft`: partially filled records.  Every field starts
  ``None`` and is populated as the user answers questions.  ``Draft`` is
  the tagged union of the three, discriminated by ``kind``.
- :class:`ClassifiedIntent`: what the parser or the classifier believes
  an utterance means.  Never persisted.
- :func:`build_draft` / :func:`merge_slots`: create a draft from slots
  and fold new slots into an existing draft without overwriting anything
  already filled.
"""

from __future__ import annotations

import copy
import datetime as dt
import logging
from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from voxledger.assistant.errors import InvalidMergeState

logger = logging.getLogger(__name__)


# ── Enums ─────────────────────────────────────────────────────────────────────


class RecordKind(StrEnum):
    """What an utterance is about."""

    TRANSACTION = "transaction"
    ATTENDANCE = "attendance"
    REMINDER = "reminder"
    QUERY = "query"
    UNKNOWN = "unknown"


class WageFrequency(StrEnum):
    """How often a service provider is paid."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


# ── Service providers ─────────────────────────────────────────────────────────


class Schedule(BaseModel):
    """How often a provider comes and for how long."""

    visits_per_week: int | None = None
    hours_per_visit: float | None = None


class Wage(BaseModel):
    """What a provider is paid and how often."""

    amount: Decimal | None = None
    frequency: WageFrequency | None = None
    schedule: Schedule | None = None

    def is_set(self) -> bool:
        """Return ``True`` when both amount and frequency are known."""
        return self.amount is not None and self.frequency is not None


class ServiceProvider(BaseModel):
    """A household service provider mentioned in a payment."""

    type: str | None = Field(
        default=None,
        description="Provider type, e.g. 'maid', 'driver', 'milkman'.",
    )
    name: str | None = None
    wage: Wage | None = None


# ── Drafts ────────────────────────────────────────────────────────────────────


class TransactionDraft(BaseModel):
    """An expense or income being assembled through the conversation."""

    kind: Literal["transaction"] = "transaction"
    amount: Decimal | None = Field(
        default=None,
        description="Positive amount in the user's currency.",
    )
    type: Literal["expense", "income"] | None = None
    description: str | None = None
    categories: list[str] = Field(default_factory=list)
    payment_method: str | None = None
    date: dt.date | None = None
    service_provider: ServiceProvider | None = None


class AttendanceDraft(BaseModel):
    """A provider's presence or absence on a given day."""

    kind: Literal["attendance"] = "attendance"
    provider_type: str | None = None
    name: str | None = None
    status: Literal["present", "absent"] | None = None
    date: dt.date | None = None
    wage: Wage | None = None


class ReminderDraft(BaseModel):
    """A reminder to do something on a date."""

    kind: Literal["reminder"] = "reminder"
    title: str | None = None
    due_date: dt.date | None = None
    amount: Decimal | None = None
    recurring: bool | None = None
    frequency: str | None = None


Draft = Annotated[
    Union[TransactionDraft, AttendanceDraft, ReminderDraft],
    Field(discriminator="kind"),
]

_DRAFT_MODELS: dict[RecordKind, type[BaseModel]] = {
    RecordKind.TRANSACTION: TransactionDraft,
    RecordKind.ATTENDANCE: AttendanceDraft,
    RecordKind.REMINDER: ReminderDraft,
}

_draft_adapter: TypeAdapter[Any] = TypeAdapter(Draft)

#: Kinds that are assembled into a draft (queries are answered directly).
DRAFT_KINDS: tuple[RecordKind, ...] = tuple(_DRAFT_MODELS)


# ── Classified intent ─────────────────────────────────────────────────────────


class ClassifiedIntent(BaseModel):
    """The parser's or classifier's reading of one utterance.

    ``slots`` is shaped like the draft model for ``kind`` (nested dicts for
    ``service_provider`` / ``wage``); unknown keys are ignored on merge.
    """

    kind: RecordKind = RecordKind.UNKNOWN
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    slots: dict[str, Any] = Field(default_factory=dict)
    missing_fields: list[str] = Field(default_factory=list)

    @classmethod
    def unknown(cls) -> ClassifiedIntent:
        """The degraded result used whenever classification fails."""
        return cls(kind=RecordKind.UNKNOWN, confidence=0.0)

    def is_actionable(self, threshold: float) -> bool:
        """Return ``True`` if the intent is known and confident enough to act on."""
        return self.kind != RecordKind.UNKNOWN and self.confidence >= threshold


# ── Building and merging ──────────────────────────────────────────────────────


def _coerce(kind: RecordKind, slots: dict[str, Any]) -> BaseModel:
    """Validate *slots* into the draft model for *kind*.

    Unknown keys are dropped.  Top-level keys that fail validation (an
    oracle returning ``"amount": "a lot"``) are dropped too, so one bad
    slot never discards the good ones.
    """
    model = _DRAFT_MODELS[kind]
    known_fields = model.model_fields.keys()
    data = {k: v for k, v in slots.items() if k in known_fields and k != "kind"}

    for _ in range(len(data) + 1):
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err["loc"]}
            if not bad:
                raise
            logger.warning("Dropping invalid %s slots: %s", kind, sorted(map(str, bad)))
            data = {k: v for k, v in data.items() if k not in bad}
    return model()


def build_draft(kind: RecordKind, slots: dict[str, Any] | None = None) -> BaseModel:
    """Create a fresh draft of *kind* from (possibly partial) *slots*."""
    if kind not in _DRAFT_MODELS:
        raise ValueError(f"No draft model for kind: {kind}")
    return _coerce(kind, slots or {})


def _fill_missing(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge *update* into *base*, only where *base* has no value."""
    for key, value in update.items():
        if value is None:
            continue
        current = base.get(key)
        if current is None:
            base[key] = copy.deepcopy(value)
        elif isinstance(current, dict) and isinstance(value, dict):
            _fill_missing(current, value)
        elif isinstance(current, list) and isinstance(value, list):
            current.extend(v for v in value if v not in current)
    return base


def merge_slots(draft: BaseModel, kind: RecordKind, slots: dict[str, Any]) -> BaseModel:
    """Return a new draft with *slots* folded into *draft*.

    Filled fields are never overwritten; list fields are unioned.  The
    input draft is not modified, so a caller that is interrupted before
    committing the result leaves no partial merge behind.

    Raises:
        InvalidMergeState: If *kind* does not match the draft's kind.
    """
    draft_kind = RecordKind(draft.kind)  # type: ignore[attr-defined]
    if draft_kind != kind:
        raise InvalidMergeState(draft_kind.value, kind.value)

    incoming = _coerce(kind, slots).model_dump(exclude_none=True)
    merged = _fill_missing(draft.model_dump(), incoming)
    return _draft_adapter.validate_python(merged)


def draft_from_dict(data: dict[str, Any]) -> BaseModel:
    """Rebuild a draft from its ``model_dump()`` output."""
    return _draft_adapter.validate_python(data)
