"""Shared fakes: chat models, an in-memory Pinecone index, and service wiring."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from langchain_core.language_models.chat_models import SimpleChatModel
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.runnables import RunnableLambda
from pydantic import Field

from support_agent.graph.services import SupportServices
from support_agent.graph.state import Intent
from support_agent.rag.retriever import PassageRetriever
from support_agent.rag.synthesizer import AnswerSynthesizer
from support_agent.store.embedder import DeterministicHashEmbeddings
from support_agent.store.knowledge_store import KnowledgeStore
from support_agent.tools.crm import InMemoryCrm
from support_agent.tools.ticketing import InMemoryTicketing

KB_MATCHES: list[dict[str, Any]] = [
    {
        "id": "hours:0",
        "score": 0.91,
        "metadata": {
            "text": "We are open 9am-9pm KSA time.\nClosed on public holidays.",
            "source": "hours.md",
            "chunk": 0.0,
        },
    },
    {
        "id": "refund-policy:2",
        "score": 0.82,
        "metadata": {
            "text": "Refunds are processed within 5 business days.",
            "source": "refund-policy.md",
            "chunk": 2.0,
        },
    },
    {
        "id": "contact:1",
        "score": 0.77,
        "metadata": {"text": "Reach us by phone or chat.", "source": "contact.md", "chunk": 1},
    },
    {
        "id": "faq",
        "score": 0.70,
        "metadata": {"text": "General FAQ.", "source": "faq.md"},
    },
]


class FakeIndex:
    """Stands in for a Pinecone `Index` handle."""

    def __init__(self, matches: list[dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.matches = list(matches or [])
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def query(self, *, vector: list[float], top_k: int, include_metadata: bool, namespace: str) -> dict[str, Any]:
        self.calls.append({"vector": vector, "top_k": top_k, "namespace": namespace})
        if self.error is not None:
            raise self.error
        return {"matches": self.matches[:top_k]}

    def close(self) -> None:
        self.closed = True


class ExplodingChatModel(SimpleChatModel):
    """Chat model whose every call fails, like an unreachable provider."""

    error_message: str = "model service unavailable"

    @property
    def _llm_type(self) -> str:
        return "exploding-fake"

    def _call(self, messages: Any, stop: Any = None, run_manager: Any = None, **kwargs: Any) -> str:
        raise RuntimeError(self.error_message)


class StructuredFakeChatModel(FakeListChatModel):
    """Fake model that also supports `with_structured_output`."""

    structured_payload: dict[str, Any] = Field(default_factory=dict)

    def with_structured_output(self, schema: Any, *, include_raw: bool = False, **kwargs: Any) -> Any:
        return RunnableLambda(lambda _prompt: schema.model_validate(self.structured_payload))


def make_store(matches: list[dict[str, Any]] | None = None, error: Exception | None = None) -> KnowledgeStore:
    return KnowledgeStore(
        embedder=DeterministicHashEmbeddings(dimension=8),
        index=FakeIndex(KB_MATCHES if matches is None else matches, error=error),
        namespace="test-kb",
        embedding_model="deterministic-hash",
    )


@pytest.fixture
def kb_store() -> KnowledgeStore:
    return make_store()


@pytest.fixture
def make_services() -> Callable[..., SupportServices]:
    """Factory for services with scripted models.

    The general model fails by default so the finalizer returns the
    responder's draft verbatim.
    """

    def _factory(
        *,
        label: str = "faq",
        synth_llm: Any | None = None,
        general_llm: Any | None = None,
        store: KnowledgeStore | None = None,
        fallback: Intent = Intent.FAQ,
        top_k: int = 5,
    ) -> SupportServices:
        retriever = PassageRetriever(make_store() if store is None else store, top_k=top_k)
        return SupportServices(
            classifier_llm=FakeListChatModel(responses=[label]),
            general_llm=ExplodingChatModel() if general_llm is None else general_llm,
            synthesizer=AnswerSynthesizer(retriever, ExplodingChatModel() if synth_llm is None else synth_llm),
            crm=InMemoryCrm(),
            ticketing=InMemoryTicketing(),
            unknown_intent_fallback=fallback,
        )

    return _factory


@pytest.fixture(name="make_store")
def make_store_fixture() -> Callable[..., KnowledgeStore]:
    return make_store


@pytest.fixture
def exploding_llm() -> ExplodingChatModel:
    return ExplodingChatModel()


@pytest.fixture
def structured_llm() -> Callable[..., StructuredFakeChatModel]:
    def _factory(payload: dict[str, Any], responses: list[str] | None = None) -> StructuredFakeChatModel:
        return StructuredFakeChatModel(responses=responses or ["not json"], structured_payload=payload)

    return _factory
