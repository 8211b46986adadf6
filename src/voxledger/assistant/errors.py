"""Exceptions raised inside the assistant pipeline.

None of these reach the caller of :func:`voxledger.assistant.handle_utterance`;
each one is turned into a polite sentence at the seam where it is caught.
"""


class AssistantError(Exception):
    """Base class for assistant pipeline errors."""


class OracleUnavailable(AssistantError):
    """The intent oracle failed, timed out or returned malformed JSON."""


class StoreWriteFailure(AssistantError):
    """A user-visible write to the persistent store failed."""


class InvalidMergeState(AssistantError):
    """Slots of one record kind were merged into a draft of another kind."""

    def __init__(self, draft_kind: str, slots_kind: str) -> None:
        super().__init__(f"Cannot merge {slots_kind} slots into a {draft_kind} draft")
        self.draft_kind = draft_kind
        self.slots_kind = slots_kind
