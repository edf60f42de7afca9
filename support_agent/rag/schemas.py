"""Structured models for retrieval results and grounded answers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


def citation_label(source: str, chunk: int | None) -> str:
    """Render a `source#chunk` label; a whole-document reference has no suffix."""

    return source if chunk is None else f"{source}#{chunk}"


class Citation(BaseModel):
    """Reference to a knowledge-base document, optionally to one chunk of it."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(description="Document identifier the answer relies on")
    chunk: int | None = Field(default=None, description="Chunk index, or null for the whole document")

    @property
    def label(self) -> str:
        return citation_label(self.source, self.chunk)


class GroundedAnswer(BaseModel):
    """Answer to a support question, grounded in the retrieved context."""

    answer: str = Field(description="Answer text for the customer")
    citations: list[Citation] = Field(description="Sources used, most relevant first")
    confidence: float = Field(ge=0.0, le=1.0, description="Confidence between 0 and 1")


class RetrievedPassage(BaseModel):
    """One knowledge-base chunk returned by the vector store."""

    model_config = ConfigDict(frozen=True)

    text: str
    source: str
    chunk: int | None = None
    score: float
    rank: int = Field(ge=0, description="0-based retrieval order")

    @property
    def label(self) -> str:
        return citation_label(self.source, self.chunk)


class SynthesisResult(BaseModel):
    """Synthesizer output, including the passages it was grounded on."""

    query: str
    answer: str
    citations: list[Citation]
    confidence: float = Field(ge=0.0, le=1.0)
    decode_tier: str
    retrieved: list[RetrievedPassage]
