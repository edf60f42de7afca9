"""Passage retriever over the Pinecone knowledge base.

Store order is kept as-is: passages are neither re-ranked nor de-duplicated,
so `rank` always equals the position the vector store returned.
"""

from __future__ import annotations

from typing import Any

from support_agent.config import settings
from support_agent.errors import ExternalServiceError
from support_agent.rag.schemas import RetrievedPassage
from support_agent.store.knowledge_store import KnowledgeStore
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)


def _as_matches(query_result: Any) -> list[Any]:
    if hasattr(query_result, "matches"):
        return list(query_result.matches)
    if isinstance(query_result, dict):
        return list(query_result.get("matches", []))
    return []


def _as_metadata(match: Any) -> dict[str, Any]:
    if hasattr(match, "metadata") and isinstance(match.metadata, dict):
        return match.metadata
    if isinstance(match, dict) and isinstance(match.get("metadata"), dict):
        return match["metadata"]
    return {}


def _as_score(match: Any) -> float:
    if hasattr(match, "score"):
        return float(match.score)
    if isinstance(match, dict):
        return float(match.get("score", 0.0))
    return 0.0


def _as_chunk(metadata: dict[str, Any]) -> int | None:
    # Pinecone stores numeric metadata as floats.
    value = metadata.get("chunk")
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class PassageRetriever:
    """Top-K similarity search against the shared knowledge store."""

    def __init__(self, store: KnowledgeStore, *, top_k: int = settings.top_k) -> None:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self.store = store
        self.top_k = top_k

    def retrieve(self, query: str) -> list[RetrievedPassage]:
        """Embed `query` and return up to `top_k` passages, most relevant first.

        Raises
        ------
        ExternalServiceError
            If the embedder or the vector store fails.
        """

        try:
            query_vector = self.store.embedder.embed_query(query)
        except Exception as exc:
            raise ExternalServiceError("embedding", str(exc)) from exc

        try:
            raw = self.store.index.query(
                vector=query_vector,
                top_k=self.top_k,
                include_metadata=True,
                namespace=self.store.namespace,
            )
        except Exception as exc:
            raise ExternalServiceError("vector-store", str(exc)) from exc

        passages: list[RetrievedPassage] = []
        for rank, match in enumerate(_as_matches(raw)[: self.top_k]):
            metadata = _as_metadata(match)
            passages.append(
                RetrievedPassage(
                    text=str(metadata.get("text", "")),
                    source=str(metadata.get("source", "unknown")),
                    chunk=_as_chunk(metadata),
                    score=_as_score(match),
                    rank=rank,
                )
            )

        logger.info(
            "Retriever returned passages",
            extra={"context": {"count": len(passages), "namespace": self.store.namespace}},
        )
        return passages
