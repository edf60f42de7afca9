"""Collaborators the graph nodes depend on, built once per process."""

from __future__ import annotations

from dataclasses import dataclass, field

from langchain_core.language_models import BaseChatModel

from support_agent.config import settings
from support_agent.graph.state import Intent
from support_agent.rag.retriever import PassageRetriever
from support_agent.rag.synthesizer import AnswerSynthesizer
from support_agent.store.knowledge_store import KnowledgeStore
from support_agent.tools.crm import InMemoryCrm
from support_agent.tools.ticketing import InMemoryTicketing
from support_agent.utils.llm import get_groq_chat_model


def resolve_fallback_intent(value: str) -> Intent:
    """Parse the configured policy label for unrecognized classifier output."""

    try:
        return Intent(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(intent.value for intent in Intent)
        raise ValueError(f"UNKNOWN_INTENT_FALLBACK must be one of: {allowed}; got {value!r}") from exc


@dataclass
class SupportServices:
    classifier_llm: BaseChatModel
    general_llm: BaseChatModel
    synthesizer: AnswerSynthesizer
    crm: InMemoryCrm = field(default_factory=InMemoryCrm)
    ticketing: InMemoryTicketing = field(default_factory=InMemoryTicketing)
    unknown_intent_fallback: Intent = Intent.FAQ


def build_services(store: KnowledgeStore, *, top_k: int | None = None) -> SupportServices:
    """Wire Groq models and the shared knowledge store into node collaborators."""

    general_llm = get_groq_chat_model("general")
    retriever = PassageRetriever(store, top_k=top_k or settings.top_k)

    return SupportServices(
        classifier_llm=get_groq_chat_model("classifier"),
        general_llm=general_llm,
        synthesizer=AnswerSynthesizer(retriever, general_llm),
        unknown_intent_fallback=resolve_fallback_intent(settings.unknown_intent_fallback),
    )
