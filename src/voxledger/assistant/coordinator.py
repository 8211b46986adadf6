"""Multi-turn slot-filling coordinator (state machine).

Per ``(user, kind)`` the conversation moves through::

    NO_DRAFT → AWAITING_FIELD(f) → COMPLETE → (cleared) → NO_DRAFT

- NO_DRAFT + utterance: the parser reads it, the classifier is consulted
  only when the parser cannot.  Queries are answered at once; other kinds
  create (or merge into) that kind's draft.
- AWAITING_FIELD(f) + utterance: the reply is first read as the answer to
  *f*, then parsed afresh, then re-classified with the draft as context.
  Filled fields are never overwritten.  An unusable reply re-asks *f*.
- COMPLETE: the draft is routed, the operations are written, patterns are
  learned best-effort, and the draft is cleared.  If the write fails the
  draft stays COMPLETE until "try again"; a new utterance of the same kind
  replaces it instead of merging into it.
- Any state + cancel phrase: all of the user's drafts are dropped, after
  any turn that is mid-merge on one of them has committed.

Every read → merge → write of a draft happens under the session store's
lock for that key, on a copy that is committed only at the end, so an
exception or cancellation leaves the stored draft as it was.
"""

from __future__ import annotations

import contextlib
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voxledger.assistant import slots as fields
from voxledger.assistant.classifier import IntentClassifier
from voxledger.assistant.drafts import (
    AttendanceDraft,
    ClassifiedIntent,
    RecordKind,
    TransactionDraft,
    build_draft,
)
from voxledger.assistant.errors import InvalidMergeState
from voxledger.assistant.parser import is_cancel, parse, parse_answer
from voxledger.assistant.session_store import SessionStore
from voxledger.config import settings
from voxledger.ledger import repository
from voxledger.ledger.operations import StoreOperation
from voxledger.patterns.detector import PatternDetector
from voxledger.patterns.learning import describe_patterns, learn_from_operations
from voxledger.processors import ProcessorRouter

logger = logging.getLogger(__name__)

GENERIC_CLARIFICATION = (
    "Sorry, I didn't quite catch that. You can tell me about a payment, "
    "ask me to remind you of something, or ask how much you spent."
)
CANCELLED_REPLY = "Okay, I've cancelled that."
NOTHING_TO_CANCEL_REPLY = "Okay. There was nothing pending to cancel."
REASK_PREFIX = "Sorry, I didn't get that."
UNSAVED_REPLACED_NOTE = "Your earlier {label} was not saved, so I have replaced it."

#: Kinds that can hold a pending draft, in the order cancel locks them.
_DRAFT_KINDS = (RecordKind.TRANSACTION, RecordKind.ATTENDANCE, RecordKind.REMINDER)

_KIND_LABELS = {
    RecordKind.TRANSACTION: "payment",
    RecordKind.ATTENDANCE: "attendance entry",
    RecordKind.REMINDER: "reminder",
}

_RETRY_RE = re.compile(r"^\s*(?:please\s+)?(?:try\s+again|retry|again|save\s+it)\b", re.IGNORECASE)


# ── Result types ──────────────────────────────────────────────────────────────


@dataclass
class NeedsMoreInfo:
    """The one field the assistant is asking about, and how it asked."""

    field: str
    question: str


@dataclass
class UtteranceResult:
    """Value object returned for every utterance."""

    #: Sentence to speak back to the user.
    response_text: str

    #: Set while a draft is incomplete.
    needs_more_info: NeedsMoreInfo | None = None

    #: Operations written for a completed record.
    store_operations: list[StoreOperation] = field(default_factory=list)


# ── Coordinator ───────────────────────────────────────────────────────────────


class SlotFillingCoordinator:
    """State machine driving intent resolution and slot filling.

    Args:
        store: Where in-flight drafts live.
        classifier: LLM-backed classifier for utterances the parser cannot read.
        router: Dispatches completed records to processors.
        detector: Pattern detector for best-effort learning.
        today: Callable returning the reference day.
        strict_merge: Raise on :class:`InvalidMergeState` instead of
            restarting the draft (defaults to ``settings.strict_merge``).
    """

    def __init__(
        self,
        store: SessionStore,
        classifier: IntentClassifier,
        router: ProcessorRouter | None = None,
        *,
        detector: PatternDetector | None = None,
        today: Callable[[], date] = date.today,
        strict_merge: bool | None = None,
    ) -> None:
        self._store = store
        self._classifier = classifier
        self._router = router or ProcessorRouter(today=today)
        self._detector = detector or PatternDetector()
        self._today = today
        self._strict_merge = settings.strict_merge if strict_merge is None else strict_merge

    @property
    def store(self) -> SessionStore:
        return self._store

    # ── Entry point ───────────────────────────────────────────────────────

    async def handle(
        self,
        user_id: str,
        text: str,
        session: AsyncSession | None = None,
    ) -> UtteranceResult:
        """Process one utterance from *user_id*.

        Args:
            user_id: The speaking user.
            text: The utterance.
            session: Database session for reads and writes.  Without one,
                completed records are routed but nothing is written.

        Returns:
            An :class:`UtteranceResult`.

        Raises:
            StoreWriteFailure: If writing a completed record fails.  The
                completed draft is kept so the user can retry.
        """
        text = text.strip()
        if not text:
            return UtteranceResult(response_text=GENERIC_CLARIFICATION)

        if is_cancel(text):
            cleared = await self._cancel(user_id)
            logger.info("User %s cancelled drafts: %s", user_id, [str(k) for k in cleared])
            return UtteranceResult(response_text=CANCELLED_REPLY if cleared else NOTHING_TO_CANCEL_REPLY)

        try:
            return await self._handle(user_id, text, session)
        finally:
            self._store.record_turn(user_id, text)

    async def _handle(self, user_id: str, text: str, session: AsyncSession | None) -> UtteranceResult:
        latest = self._store.latest(user_id)
        if latest is not None:
            kind, pending = latest
            if pending.awaiting_field is None and _RETRY_RE.match(text):
                return await self._retry(user_id, kind, session)
            if pending.awaiting_field is not None:
                outcome = await self._continue(user_id, kind, text, session)
                if isinstance(outcome, UtteranceResult):
                    return outcome
                if outcome.kind != RecordKind.UNKNOWN:
                    return await self._dispatch(user_id, text, outcome, session)

        intent = parse(text, self._today())
        if intent.kind == RecordKind.UNKNOWN:
            intent = await self._classifier.classify(
                text, recent_history=self._store.recent_turns(user_id, settings.history_turns),
            )
        return await self._dispatch(user_id, text, intent, session)

    # ── States ────────────────────────────────────────────────────────────

    async def _continue(
        self,
        user_id: str,
        kind: RecordKind,
        text: str,
        session: AsyncSession | None,
    ) -> UtteranceResult | ClassifiedIntent:
        """Handle a reply while a field is awaited.

        Returns an :class:`UtteranceResult`, or the intent of an utterance
        about a different kind, which the caller dispatches on its own.
        """
        async with self._store.lock(user_id, kind):
            pending = self._store.get(user_id, kind)
            if pending is None or pending.awaiting_field is None:
                return ClassifiedIntent.unknown()
            draft, awaited = pending.draft, pending.awaiting_field

            answer = parse_answer(draft, awaited, text, self._today())
            if answer is not None:
                logger.debug("Answer for %s.%s: %s", kind, awaited, answer)
                return await self._advance(user_id, kind, self._merge(draft, kind, answer), session)

            intent = parse(text, self._today())
            if intent.kind == RecordKind.UNKNOWN:
                intent = await self._classifier.classify(
                    text,
                    prior_draft=draft,
                    recent_history=self._store.recent_turns(user_id, settings.history_turns),
                )

            if intent.kind == kind and intent.is_actionable(settings.confidence_threshold):
                await self._log_context(user_id, text, intent, session)
                return await self._advance(user_id, kind, self._merge(draft, kind, intent.slots), session)

            if intent.is_actionable(settings.confidence_threshold):
                return intent

            question = fields.question_for(draft, awaited)
            logger.info("Re-asking %s for user %s", awaited, user_id)
            return UtteranceResult(
                response_text=f"{REASK_PREFIX} {question}",
                needs_more_info=NeedsMoreInfo(field=awaited, question=question),
            )

    async def _dispatch(
        self,
        user_id: str,
        text: str,
        intent: ClassifiedIntent,
        session: AsyncSession | None,
    ) -> UtteranceResult:
        """Act on a fresh intent: answer a query or start/merge a draft."""
        if not intent.is_actionable(settings.confidence_threshold):
            logger.info("No actionable intent for user %s (%s, %.2f)", user_id, intent.kind, intent.confidence)
            return UtteranceResult(response_text=GENERIC_CLARIFICATION)

        await self._log_context(user_id, text, intent, session)

        if intent.kind == RecordKind.QUERY:
            result = await self._router.route(RecordKind.QUERY, user_id, intent.slots, session)
            return UtteranceResult(response_text=result.response_text)

        kind = intent.kind
        slots_in = dict(intent.slots)
        if kind == RecordKind.REMINDER and not slots_in.get("title"):
            slots_in["title"] = text

        async with self._store.lock(user_id, kind):
            pending = self._store.get(user_id, kind)
            replaced = False
            if pending is None:
                draft = build_draft(kind, slots_in)
            elif pending.awaiting_field is None:
                # Complete but unsaved: a failed write left it behind.
                logger.warning("Replacing unsaved %s for user %s with a new one", kind, user_id)
                draft = build_draft(kind, slots_in)
                replaced = True
            else:
                draft = self._merge(pending.draft, kind, slots_in)
            result = await self._advance(user_id, kind, draft, session)

        if replaced:
            note = UNSAVED_REPLACED_NOTE.format(label=_KIND_LABELS[kind])
            result.response_text = f"{note} {result.response_text}"
        return result

    async def _cancel(self, user_id: str) -> list[RecordKind]:
        """Drop every draft of *user_id* and return the kinds cleared.

        Takes the user's per-kind locks in :data:`_DRAFT_KINDS` order first,
        so a turn still merging into a draft commits before it is dropped.
        """
        async with contextlib.AsyncExitStack() as stack:
            for kind in _DRAFT_KINDS:
                await stack.enter_async_context(self._store.lock(user_id, kind))
            return self._store.clear_user(user_id)

    async def _retry(self, user_id: str, kind: RecordKind, session: AsyncSession | None) -> UtteranceResult:
        """Route a completed draft again after a failed write."""
        async with self._store.lock(user_id, kind):
            pending = self._store.get(user_id, kind)
            if pending is None:
                return UtteranceResult(response_text=GENERIC_CLARIFICATION)
            logger.info("Retrying stored %s for user %s", kind, user_id)
            return await self._advance(user_id, kind, pending.draft, session)

    async def _advance(
        self,
        user_id: str,
        kind: RecordKind,
        draft: BaseModel,
        session: AsyncSession | None,
    ) -> UtteranceResult:
        """Ask for the next missing field, or complete the draft.

        Must be called with the ``(user_id, kind)`` lock held.
        """
        draft = await self._prefill_wage(user_id, kind, draft, session)

        missing = fields.next_missing_field(draft)
        if missing is not None:
            self._store.put(user_id, kind, draft, awaiting_field=missing)
            question = fields.question_for(draft, missing)
            return UtteranceResult(
                response_text=question,
                needs_more_info=NeedsMoreInfo(field=missing, question=question),
            )

        # Kept until written, so a failed write can be retried.
        self._store.put(user_id, kind, draft, awaiting_field=None)
        result = await self._router.route(kind, user_id, draft, session)
        response = result.response_text

        if session is not None:
            await repository.apply_store_operations(session, result.store_operations)
            patterns = await learn_from_operations(session, user_id, result.store_operations, self._detector)
            note = describe_patterns(patterns)
            if note:
                response = f"{response} {note}"

        self._store.clear(user_id, kind)
        logger.info("Completed %s for user %s", kind, user_id)
        return UtteranceResult(response_text=response, store_operations=result.store_operations)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _merge(self, draft: BaseModel, kind: RecordKind, slots: dict[str, Any]) -> BaseModel:
        try:
            return fields.fill_draft(draft, kind, slots)
        except InvalidMergeState as exc:
            if self._strict_merge:
                raise
            logger.warning("%s; restarting the draft from the new slots", exc)
            return build_draft(kind, slots)

    async def _prefill_wage(
        self,
        user_id: str,
        kind: RecordKind,
        draft: BaseModel,
        session: AsyncSession | None,
    ) -> BaseModel:
        """Fill a known provider's wage from the store."""
        if session is None:
            return draft
        match draft:
            case TransactionDraft(service_provider=sp) if (
                sp is not None and sp.type and sp.name and (sp.wage is None or not sp.wage.is_set())
            ):
                provider_type, name = sp.type, sp.name
            case AttendanceDraft(provider_type=str(provider_type), name=str(name)) if (
                draft.wage is None or not draft.wage.is_set()
            ):
                pass
            case _:
                return draft

        try:
            row = await repository.get_provider_wage(session, user_id, provider_type, name)
        except SQLAlchemyError:
            logger.warning("Wage lookup failed for %s %s", provider_type, name, exc_info=True)
            return draft
        if row is None:
            return draft

        wage = {
            "amount": row.amount,
            "frequency": row.frequency,
            "schedule": {"visits_per_week": row.visits_per_week, "hours_per_visit": row.hours_per_visit},
        }
        slots = {"service_provider": {"wage": wage}} if kind == RecordKind.TRANSACTION else {"wage": wage}
        logger.debug("Pre-filled wage for %s %s from the store", provider_type, name)
        return self._merge(draft, kind, slots)

    async def _log_context(
        self,
        user_id: str,
        text: str,
        intent: ClassifiedIntent,
        session: AsyncSession | None,
    ) -> None:
        """Record a confident classification in ``context_logs``, best-effort."""
        if session is None or intent.confidence <= settings.context_log_confidence:
            return
        try:
            async with session.begin_nested():
                await repository.save_context_log(
                    session,
                    user_id=user_id,
                    utterance=text,
                    intent=str(intent.kind),
                    confidence=intent.confidence,
                    slots=intent.model_dump(mode="json")["slots"],
                )
        except Exception:
            logger.exception("Could not write context log for user %s", user_id)

