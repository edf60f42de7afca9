"""Ordered fallback chain that turns model output into a `GroundedAnswer`.

Tiers, tried in order:
1. `structured`: schema-constrained decode via `with_structured_output`, when
   the chat model supports it.
2. `json_text`: free-text decode, parsing a fenced code block if present and
   the raw text otherwise.
3. `context_fallback`: a degraded answer built from the retrieved passages.
   It makes no model call, so it cannot fail.

Every candidate goes through `validate_answer` before it is accepted. Any
exception raised inside a tier, including a schema violation, moves the chain
on to the next tier.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import ValidationError

from support_agent.errors import DecodeError
from support_agent.rag.schemas import GroundedAnswer, RetrievedPassage
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_CONFIDENCE = 0.4
FALLBACK_CITATIONS = 3
FALLBACK_ANSWER = "I do not know."

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)```")


class TierUnavailableError(DecodeError):
    """The model cannot serve this tier at all (as opposed to failing it)."""


@dataclass(frozen=True)
class DecodeRequest:
    query: str
    context: str
    passages: Sequence[RetrievedPassage]
    max_citations: int


class DecodeTier(Protocol):
    name: str

    def decode(self, request: DecodeRequest) -> Any:
        """Return a candidate answer (model instance or plain dict)."""


def validate_answer(candidate: Any, *, max_citations: int) -> GroundedAnswer:
    """Check a tier's candidate against the answer schema."""

    try:
        if isinstance(candidate, GroundedAnswer):
            answer = GroundedAnswer.model_validate(candidate.model_dump())
        else:
            answer = GroundedAnswer.model_validate(candidate)
    except ValidationError as exc:
        raise DecodeError(f"Candidate does not match answer schema: {exc.error_count()} error(s)") from exc

    if len(answer.citations) > max_citations:
        raise DecodeError(
            f"Candidate cites {len(answer.citations)} sources; at most {max_citations} allowed"
        )
    return answer


def extract_json_payload(text: str) -> Any:
    """Parse JSON from a fenced code block, or from the whole text."""

    fenced = _FENCED_JSON.search(text) or _FENCED_ANY.search(text)
    candidate = fenced.group(1) if fenced else text

    try:
        return json.loads(candidate.strip())
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Model output is not valid JSON: {exc.msg}") from exc


class StructuredOutputTier:
    name = "structured"

    def __init__(self, llm: Any, prompt: ChatPromptTemplate) -> None:
        self.llm = llm
        self.prompt = prompt

    def decode(self, request: DecodeRequest) -> Any:
        bind = getattr(self.llm, "with_structured_output", None)
        if bind is None:
            raise TierUnavailableError("Chat model has no structured-output support")
        try:
            structured = bind(GroundedAnswer)
        except NotImplementedError as exc:
            raise TierUnavailableError("Chat model has no structured-output support") from exc

        chain = self.prompt | structured
        return chain.invoke({"query": request.query, "context": request.context})


class JsonTextTier:
    name = "json_text"

    def __init__(self, llm: Any, prompt: ChatPromptTemplate) -> None:
        self.llm = llm
        self.prompt = prompt

    def decode(self, request: DecodeRequest) -> Any:
        chain = self.prompt | self.llm | StrOutputParser()
        raw = chain.invoke({"query": request.query, "context": request.context})
        return extract_json_payload(raw)


class ContextFallbackTier:
    name = "context_fallback"

    def decode(self, request: DecodeRequest) -> Any:
        passages = list(request.passages)
        first_line = passages[0].text.split("\n")[0].strip() if passages else ""
        limit = min(FALLBACK_CITATIONS, request.max_citations)

        return {
            "answer": first_line or FALLBACK_ANSWER,
            "citations": [{"source": p.source, "chunk": p.chunk} for p in passages[:limit]],
            "confidence": FALLBACK_CONFIDENCE,
        }


def default_decode_tiers(llm: Any, prompt: ChatPromptTemplate) -> list[DecodeTier]:
    return [StructuredOutputTier(llm, prompt), JsonTextTier(llm, prompt), ContextFallbackTier()]


def decode_with_fallback(
    tiers: Sequence[DecodeTier], request: DecodeRequest
) -> tuple[GroundedAnswer, str]:
    """Run tiers in order and return the first schema-valid answer with its tier name.

    Raises
    ------
    DecodeError
        Only if every tier failed, which cannot happen while the chain ends
        with `ContextFallbackTier`.
    """

    for tier in tiers:
        try:
            answer = validate_answer(tier.decode(request), max_citations=request.max_citations)
        except TierUnavailableError as exc:
            logger.info(
                "Decode tier unavailable",
                extra={"context": {"tier": tier.name, "reason": str(exc)}},
            )
            continue
        except Exception as exc:
            logger.warning(
                "Decode tier failed; trying next tier",
                extra={"context": {"tier": tier.name, "error": str(exc)}},
            )
            continue

        logger.info(
            "Decode tier succeeded",
            extra={"context": {"tier": tier.name, "confidence": answer.confidence}},
        )
        return answer, tier.name

    raise DecodeError(f"All {len(tiers)} decode tiers failed")
