"""Embedding model selection for query retrieval.

Primary path: HuggingFace sentence-transformer embeddings.
Local/dev fallback: deterministic hash embeddings (no model download).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Protocol

from support_agent.config import settings
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)


class EmbeddingsProtocol(Protocol):
    """Minimal embeddings protocol used by the retriever."""

    def embed_query(self, text: str) -> list[float]:
        """Embed a query string into one vector."""


@dataclass
class DeterministicHashEmbeddings:
    """Hash-derived vectors for offline development and tests.

    These vectors carry no semantics; identical text maps to identical
    vectors and nothing more.
    """

    dimension: int = 384

    def embed_query(self, text: str) -> list[float]:
        current = hashlib.sha256(text.encode("utf-8")).digest()
        values: list[float] = []

        while len(values) < self.dimension:
            current = hashlib.sha256(current).digest()
            values.extend(((byte / 255.0) * 2.0 - 1.0) for byte in current)

        return values[: self.dimension]


def get_embedder(prefer_hf: bool = True) -> tuple[EmbeddingsProtocol, str]:
    """Return an embeddings implementation and a human-readable model label."""

    if prefer_hf:
        try:
            from langchain_huggingface import HuggingFaceEmbeddings  # type: ignore

            logger.info(
                "Using HuggingFace embeddings",
                extra={"context": {"model": settings.hf_embedding_model}},
            )
            return (
                HuggingFaceEmbeddings(model_name=settings.hf_embedding_model),
                settings.hf_embedding_model,
            )
        except ModuleNotFoundError:
            logger.warning(
                "langchain-huggingface missing; falling back to deterministic local embeddings"
            )
        except Exception as exc:
            # Model downloads fail in sandboxed environments.
            logger.warning(
                "Could not initialize HuggingFace embeddings; using deterministic fallback",
                extra={"context": {"error": str(exc), "model": settings.hf_embedding_model}},
            )

    logger.warning(
        "Using deterministic hash embeddings fallback",
        extra={"context": {"dimension": settings.fallback_embedding_dim}},
    )
    return DeterministicHashEmbeddings(dimension=settings.fallback_embedding_dim), "deterministic-hash"
