"""Per-thread checkpoint storage for finished graph runs."""

from __future__ import annotations

from typing import Protocol

from support_agent.graph.state import ConversationState


class CheckpointStore(Protocol):
    def put(self, thread_id: str, state: ConversationState) -> None:
        """Store `state` as the latest checkpoint for `thread_id`, replacing any prior one."""

    def get(self, thread_id: str) -> ConversationState | None:
        """Return the latest checkpoint for `thread_id`, or None."""


class InMemoryCheckpointStore:
    """Process-local checkpoints.

    Writes for the same thread are last-write-wins with no locking; callers
    that need ordering must serialize runs per thread themselves.
    """

    def __init__(self) -> None:
        self._checkpoints: dict[str, ConversationState] = {}

    def put(self, thread_id: str, state: ConversationState) -> None:
        self._checkpoints[thread_id] = state

    def get(self, thread_id: str) -> ConversationState | None:
        return self._checkpoints.get(thread_id)

    def thread_ids(self) -> list[str]:
        return list(self._checkpoints)

    def __len__(self) -> int:
        return len(self._checkpoints)
