"""Retrieval-augmented answer synthesizer with a CLI for raw inspection.

Usage:
`python -m support_agent.rag.synthesizer --query "What are your opening hours?"`
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from typing import Any

from langchain_core.prompts import ChatPromptTemplate

from support_agent.config import settings
from support_agent.rag.decoding import DecodeRequest, DecodeTier, decode_with_fallback, default_decode_tiers
from support_agent.rag.prompts import GROUNDED_ANSWER_PROMPT
from support_agent.rag.retriever import PassageRetriever
from support_agent.rag.schemas import RetrievedPassage, SynthesisResult
from support_agent.store.knowledge_store import open_knowledge_store
from support_agent.utils.llm import get_groq_chat_model
from support_agent.utils.logging import configure_logging, get_logger
from support_agent.utils.tracing import configure_langsmith_tracing, traceable

logger = get_logger(__name__)

NO_CONTEXT = "(no passages retrieved)"


def format_context(passages: Sequence[RetrievedPassage]) -> str:
    """Enumerate passages with rank, score and `source#chunk` for the prompt."""

    if not passages:
        return NO_CONTEXT

    return "\n\n".join(
        f"# Doc {passage.rank + 1} | rank={passage.rank} | score={passage.score:.4f} | {passage.label}\n"
        f"{passage.text}"
        for passage in passages
    )


class AnswerSynthesizer:
    """Retrieve top-K passages, then decode a grounded answer through the tier chain."""

    def __init__(
        self,
        retriever: PassageRetriever,
        llm: Any,
        *,
        prompt: ChatPromptTemplate = GROUNDED_ANSWER_PROMPT,
        tiers: Sequence[DecodeTier] | None = None,
    ) -> None:
        self.retriever = retriever
        self.tiers = list(tiers) if tiers is not None else default_decode_tiers(llm, prompt)

    @traceable(name="synthesize_answer", run_type="chain")
    def synthesize(self, query: str) -> SynthesisResult:
        # Retrieval errors propagate; only decode failures are recovered here.
        passages = self.retriever.retrieve(query)
        request = DecodeRequest(
            query=query,
            context=format_context(passages),
            passages=passages,
            max_citations=self.retriever.top_k,
        )
        answer, tier_name = decode_with_fallback(self.tiers, request)

        logger.info(
            "Synthesis completed",
            extra={
                "context": {
                    "passages": len(passages),
                    "citations": len(answer.citations),
                    "confidence": answer.confidence,
                    "decode_tier": tier_name,
                }
            },
        )
        return SynthesisResult(
            query=query,
            answer=answer.answer,
            citations=answer.citations,
            confidence=answer.confidence,
            decode_tier=tier_name,
            retrieved=passages,
        )


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Answer a question from the support knowledge base")
    parser.add_argument("--query", type=str, required=True)
    parser.add_argument("--namespace", type=str, default=settings.pinecone_namespace)
    parser.add_argument("--top-k", type=int, default=settings.top_k)
    parser.add_argument("--debug", type=int, default=0)
    return parser


def main() -> None:
    args = _build_arg_parser().parse_args()
    configure_logging(debug=bool(args.debug))
    configure_langsmith_tracing()

    try:
        with open_knowledge_store(namespace=args.namespace) as store:
            synthesizer = AnswerSynthesizer(
                PassageRetriever(store, top_k=args.top_k),
                get_groq_chat_model("general"),
            )
            result = synthesizer.synthesize(args.query)
    except Exception as exc:
        logger.error("Synthesis failed", extra={"context": {"error": str(exc)}})
        print(json.dumps({"ok": False, "error": str(exc)}, ensure_ascii=True))
        sys.exit(1)

    print(result.model_dump_json(indent=2))


if __name__ == "__main__":
    main()
