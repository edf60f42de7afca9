"""Conversation state threaded through the support workflow."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from support_agent.rag.schemas import Citation


class Intent(str, Enum):
    FAQ = "faq"
    ACCOUNT = "account"
    BILLING = "billing"
    HANDOFF = "handoff"


class ConversationState(BaseModel):
    """Immutable snapshot of one conversation turn.

    Nodes never mutate a state. They return a partial update (only the fields
    they change) and the executor builds the next snapshot with `merge`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str
    intent: Intent | None = None
    answer: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    citations: tuple[Citation, ...] = ()
    customer_id: str | None = None

    def merge(self, partial: Mapping[str, Any]) -> ConversationState:
        """Return a new state with `partial` applied, last write wins per field.

        Unknown keys and out-of-range values raise `pydantic.ValidationError`.
        """

        if not partial:
            return self
        return type(self).model_validate({**self.model_dump(), **dict(partial)})

    def to_response(self) -> dict[str, Any]:
        """Caller-facing view of a finished run."""

        return {
            "intent": self.intent.value if self.intent else None,
            "answer": self.answer,
            "citations": [citation.model_dump() for citation in self.citations],
            "confidence": self.confidence,
        }
