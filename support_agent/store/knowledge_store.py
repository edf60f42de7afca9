"""Process-wide handle on the knowledge-base vector store.

The embedder and the Pinecone index (with its pooled HTTP connections) are
opened once when the process starts and handed to every component that
retrieves passages. The handle is released only at shutdown, never between
requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from support_agent.config import settings
from support_agent.store.embedder import EmbeddingsProtocol, get_embedder
from support_agent.store.pinecone_client import get_or_create_index
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class KnowledgeStore:
    """Embedder plus vector index, shared by every request in the process."""

    embedder: EmbeddingsProtocol
    index: Any
    namespace: str
    embedding_model: str = "unknown"
    closed: bool = field(default=False, init=False)

    def close(self) -> None:
        """Release the index connection pool. Safe to call twice."""

        if self.closed:
            return
        close = getattr(self.index, "close", None)
        if callable(close):
            close()
        self.closed = True
        logger.info("Knowledge store closed", extra={"context": {"namespace": self.namespace}})

    def __enter__(self) -> KnowledgeStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_knowledge_store(*, namespace: str | None = None, prefer_hf: bool = True) -> KnowledgeStore:
    """Build the embedder, resolve the index, and return the shared handle."""

    embedder, model_name = get_embedder(prefer_hf=prefer_hf)
    sample = embedder.embed_query("dimension check")
    index = get_or_create_index(expected_dimension=len(sample))

    store = KnowledgeStore(
        embedder=embedder,
        index=index,
        namespace=namespace or settings.pinecone_namespace,
        embedding_model=model_name,
    )
    logger.info(
        "Knowledge store opened",
        extra={"context": {"namespace": store.namespace, "embedding_model": model_name}},
    )
    return store
