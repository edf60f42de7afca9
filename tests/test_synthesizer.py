"""Tests for retrieval and the tiered decode chain of the answer synthesizer."""

from __future__ import annotations

import json
from typing import Any

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from support_agent.errors import DecodeError, ExternalServiceError
from support_agent.rag.decoding import (
    FALLBACK_CONFIDENCE,
    ContextFallbackTier,
    DecodeRequest,
    decode_with_fallback,
    extract_json_payload,
    validate_answer,
)
from support_agent.rag.retriever import PassageRetriever
from support_agent.rag.schemas import RetrievedPassage
from support_agent.rag.synthesizer import NO_CONTEXT, AnswerSynthesizer, format_context

VALID_PAYLOAD = {
    "answer": "We are open 9am-9pm KSA time.",
    "citations": [{"source": "hours.md", "chunk": 0}, {"source": "contact.md", "chunk": 1}],
    "confidence": 0.82,
}


def _synthesizer(store: Any, llm: Any, top_k: int = 5) -> AnswerSynthesizer:
    return AnswerSynthesizer(PassageRetriever(store, top_k=top_k), llm)


def test_retriever_preserves_store_order_and_metadata(kb_store: Any) -> None:
    passages = PassageRetriever(kb_store, top_k=5).retrieve("opening hours")

    assert [p.rank for p in passages] == [0, 1, 2, 3]
    assert [p.label for p in passages] == ["hours.md#0", "refund-policy.md#2", "contact.md#1", "faq.md"]
    assert passages[0].score == pytest.approx(0.91)
    assert kb_store.index.calls[0]["top_k"] == 5
    assert kb_store.index.calls[0]["namespace"] == "test-kb"


def test_retriever_caps_passages_at_top_k(kb_store: Any) -> None:
    passages = PassageRetriever(kb_store, top_k=2).retrieve("opening hours")
    assert len(passages) == 2


def test_format_context_lists_rank_score_and_label() -> None:
    passages = [
        RetrievedPassage(text="Open 9-9.", source="hours.md", chunk=0, score=0.91234, rank=0),
        RetrievedPassage(text="Whole doc.", source="faq.md", score=0.5, rank=1),
    ]

    context = format_context(passages)

    assert "# Doc 1 | rank=0 | score=0.9123 | hours.md#0\nOpen 9-9." in context
    assert "# Doc 2 | rank=1 | score=0.5000 | faq.md\nWhole doc." in context
    assert format_context([]) == NO_CONTEXT


def test_structured_tier_is_used_when_supported(kb_store: Any, structured_llm: Any) -> None:
    result = _synthesizer(kb_store, structured_llm(VALID_PAYLOAD)).synthesize("opening hours")

    assert result.decode_tier == "structured"
    assert result.confidence == 0.82
    assert [c.label for c in result.citations] == ["hours.md#0", "contact.md#1"]


def test_schema_invalid_structured_output_falls_through(kb_store: Any, structured_llm: Any) -> None:
    """Confidence outside [0, 1] fails tier 1; the JSON tier answers instead."""

    llm = structured_llm({**VALID_PAYLOAD, "confidence": 1.5}, responses=[json.dumps(VALID_PAYLOAD)])
    result = _synthesizer(kb_store, llm).synthesize("opening hours")

    assert result.decode_tier == "json_text"
    assert result.confidence == 0.82


@pytest.mark.parametrize(
    "response",
    [
        "```json\n" + json.dumps(VALID_PAYLOAD) + "\n```",
        "Here you go:\n```\n" + json.dumps(VALID_PAYLOAD) + "\n```\nThanks!",
        json.dumps(VALID_PAYLOAD),
    ],
)
def test_json_text_tier_parses_fenced_and_plain_output(kb_store: Any, response: str) -> None:
    result = _synthesizer(kb_store, FakeListChatModel(responses=[response])).synthesize("opening hours")

    assert result.decode_tier == "json_text"
    assert result.answer == VALID_PAYLOAD["answer"]


def test_unparsable_output_degrades_to_context_answer(kb_store: Any) -> None:
    llm = FakeListChatModel(responses=["Sorry, I can't produce JSON today."])
    result = _synthesizer(kb_store, llm).synthesize("opening hours")

    assert result.decode_tier == "context_fallback"
    assert result.answer == "We are open 9am-9pm KSA time."
    assert [c.label for c in result.citations] == ["hours.md#0", "refund-policy.md#2", "contact.md#1"]
    assert result.confidence == FALLBACK_CONFIDENCE
    assert len(result.retrieved) == 4


def test_model_outage_still_yields_valid_answer(kb_store: Any, exploding_llm: Any) -> None:
    result = _synthesizer(kb_store, exploding_llm).synthesize("opening hours")

    assert result.decode_tier == "context_fallback"
    assert 0.0 <= result.confidence <= 1.0


def test_too_many_citations_fail_the_tier(make_store: Any) -> None:
    payload = {
        "answer": "x",
        "citations": [{"source": f"doc{i}.md", "chunk": i} for i in range(3)],
        "confidence": 0.9,
    }
    store = make_store()
    result = _synthesizer(store, FakeListChatModel(responses=[json.dumps(payload)]), top_k=2).synthesize("q")

    assert result.decode_tier == "context_fallback"
    assert len(result.citations) <= 2


def test_empty_retrieval_and_bad_output_answers_i_do_not_know(make_store: Any) -> None:
    store = make_store(matches=[])
    result = _synthesizer(store, FakeListChatModel(responses=["nope"])).synthesize("anything")

    assert result.answer == "I do not know."
    assert result.citations == []
    assert result.retrieved == []


@pytest.mark.parametrize("service", ["embedding", "vector-store"])
def test_retrieval_failures_propagate(make_store: Any, exploding_llm: Any, service: str) -> None:
    if service == "embedding":
        store = make_store()

        class _BrokenEmbedder:
            def embed_query(self, text: str) -> list[float]:
                raise ConnectionError("embedding endpoint down")

        store.embedder = _BrokenEmbedder()
    else:
        store = make_store(error=TimeoutError("pinecone unreachable"))

    with pytest.raises(ExternalServiceError) as excinfo:
        _synthesizer(store, exploding_llm).synthesize("opening hours")

    assert excinfo.value.service == service


def test_extract_json_payload() -> None:
    assert extract_json_payload('```JSON\n{"a": 1}\n```') == {"a": 1}
    assert extract_json_payload('  {"a": 2}  ') == {"a": 2}
    with pytest.raises(DecodeError):
        extract_json_payload("answer: yes")


def test_validate_answer_rejects_missing_keys() -> None:
    with pytest.raises(DecodeError):
        validate_answer({"answer": "x"}, max_citations=5)
    with pytest.raises(DecodeError):
        validate_answer(["not", "an", "object"], max_citations=5)


def test_chain_raises_only_when_every_tier_fails() -> None:
    class _Broken:
        name = "broken"

        def decode(self, request: DecodeRequest) -> Any:
            raise ValueError("nope")

    request = DecodeRequest(query="q", context=NO_CONTEXT, passages=[], max_citations=5)

    with pytest.raises(DecodeError):
        decode_with_fallback([_Broken(), _Broken()], request)

    answer, tier = decode_with_fallback([_Broken(), ContextFallbackTier()], request)
    assert tier == "context_fallback"
    assert answer.answer == "I do not know."
