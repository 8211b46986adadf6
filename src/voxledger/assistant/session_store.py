"""In-memory store of in-flight drafts, keyed by ``(user_id, kind)``.

At most one draft exists per user and record kind.  Each key has its own
:class:`asyncio.Lock`; callers hold it across read → merge → write so two
concurrent utterances for the same user and kind are serialized.  Drafts
live only in this process; a restart simply drops them.

An idle user costs nothing beyond their pending drafts: a lock lives only while some
caller holds or awaits it, and recent turns expire with
``history_ttl_seconds``.
"""

from __future__ import annotations

import asyncio
import time
import weakref
from collections import OrderedDict, deque
from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import BaseModel

from voxledger.assistant.drafts import RecordKind

#: How many past utterances are kept per user for classifier context.
_HISTORY_MAXLEN = 10


@dataclass
class PendingDraft:
    """A draft plus the bookkeeping the coordinator needs between turns."""

    draft: BaseModel

    #: Field we last asked the user about (``None`` once the draft is complete).
    awaiting_field: str | None = None

    #: Monotonic timestamp of the last write.
    updated_at: float = 0.0


@dataclass
class HistoryTurn:
    """One past utterance, embedded in the classifier prompt."""

    text: str
    timestamp: float = field(default_factory=time.time)


class SessionStore:
    """Dict-based in-memory store of pending drafts and recent turns.

    Args:
        ttl_seconds: Drafts idle longer than this are discarded on read.
            ``0`` keeps drafts until they complete or are cancelled.
        clock: Monotonic clock, injectable for tests.
        history_ttl_seconds: A user's recent turns are forgotten this long
            after their last one.  ``None`` uses *ttl_seconds*; ``0`` keeps
            them.
    """

    def __init__(
        self,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
        history_ttl_seconds: float | None = None,
    ) -> None:
        self._ttl = ttl_seconds
        self._history_ttl = ttl_seconds if history_ttl_seconds is None else history_ttl_seconds
        self._clock = clock
        self._drafts: dict[tuple[str, RecordKind], PendingDraft] = {}
        self._locks: weakref.WeakValueDictionary[tuple[str, RecordKind], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        # Least recently active user first.
        self._history: OrderedDict[str, deque[HistoryTurn]] = OrderedDict()
        self._last_turn: dict[str, float] = {}

    # ── Locks ─────────────────────────────────────────────────────────────

    def lock(self, user_id: str, kind: RecordKind) -> asyncio.Lock:
        """Return the lock guarding the draft for ``(user_id, kind)``.

        The store holds locks weakly: hold on to the returned lock (``async
        with`` does) for as long as it must exclude others.
        """
        key = (user_id, kind)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @property
    def lock_count(self) -> int:
        """Number of locks currently alive."""
        return len(self._locks)

    # ── Drafts ────────────────────────────────────────────────────────────

    def get(self, user_id: str, kind: RecordKind) -> PendingDraft | None:
        """Return a copy of the pending draft for ``(user_id, kind)``, if any.

        The returned draft is a deep copy: mutating it does not change the
        stored state until :meth:`put` is called.
        """
        entry = self._live_entry((user_id, kind))
        if entry is None:
            return None
        return PendingDraft(
            draft=entry.draft.model_copy(deep=True),
            awaiting_field=entry.awaiting_field,
            updated_at=entry.updated_at,
        )

    def put(
        self,
        user_id: str,
        kind: RecordKind,
        draft: BaseModel,
        awaiting_field: str | None = None,
    ) -> PendingDraft:
        """Store *draft* for ``(user_id, kind)``, replacing the previous one."""
        entry = PendingDraft(
            draft=draft.model_copy(deep=True),
            awaiting_field=awaiting_field,
            updated_at=self._clock(),
        )
        self._drafts[(user_id, kind)] = entry
        return entry

    def has(self, user_id: str, kind: RecordKind) -> bool:
        """Return ``True`` if ``(user_id, kind)`` has a pending draft."""
        return self._live_entry((user_id, kind)) is not None

    def clear(self, user_id: str, kind: RecordKind) -> None:
        """Drop the pending draft for ``(user_id, kind)``."""
        self._drafts.pop((user_id, kind), None)

    def clear_user(self, user_id: str) -> list[RecordKind]:
        """Drop every pending draft for *user_id* and return the kinds cleared."""
        kinds = [k for (uid, k) in self._drafts if uid == user_id]
        for kind in kinds:
            self._drafts.pop((user_id, kind), None)
        return kinds

    def latest(self, user_id: str) -> tuple[RecordKind, PendingDraft] | None:
        """Return the most recently updated pending draft for *user_id*."""
        candidates = [
            (kind, entry)
            for (uid, kind), entry in list(self._drafts.items())
            if uid == user_id and self._live_entry((uid, kind)) is not None
        ]
        if not candidates:
            return None
        kind, _ = max(candidates, key=lambda item: item[1].updated_at)
        entry = self.get(user_id, kind)
        return (kind, entry) if entry is not None else None

    def _live_entry(self, key: tuple[str, RecordKind]) -> PendingDraft | None:
        entry = self._drafts.get(key)
        if entry is None:
            return None
        if self._ttl and self._clock() - entry.updated_at > self._ttl:
            self._drafts.pop(key, None)
            return None
        return entry

    # ── Recent history ────────────────────────────────────────────────────

    def record_turn(self, user_id: str, text: str) -> None:
        """Remember *text* as the latest utterance from *user_id*."""
        now = self._clock()
        self._expire_history(now)
        turns = self._history.setdefault(user_id, deque(maxlen=_HISTORY_MAXLEN))
        turns.append(HistoryTurn(text=text))
        self._history.move_to_end(user_id)
        self._last_turn[user_id] = now

    def recent_turns(self, user_id: str, limit: int) -> list[HistoryTurn]:
        """Return up to *limit* of the user's most recent utterances, oldest first."""
        if limit <= 0:
            return []
        self._expire_history(self._clock())
        turns = self._history.get(user_id)
        if not turns:
            return []
        return list(turns)[-limit:]

    @property
    def history_users(self) -> int:
        """Number of users whose recent turns are held."""
        return len(self._history)

    def _expire_history(self, now: float) -> None:
        """Forget users idle past the history TTL, with their expired drafts."""
        if not self._history_ttl:
            return
        while self._history:
            user_id = next(iter(self._history))
            if now - self._last_turn[user_id] <= self._history_ttl:
                break
            del self._history[user_id]
            del self._last_turn[user_id]
            for kind in RecordKind:
                self._live_entry((user_id, kind))
