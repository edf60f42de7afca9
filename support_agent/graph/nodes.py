"""Node implementations for the support workflow.

Every node takes the current `ConversationState` and returns only the fields
it changes. Nodes that need collaborators receive them as the keyword-only
`services` argument, bound once in `build_graph`.

Routes after classification:
- `faq`: knowledge-base answer from the synthesizer
- `account`: CRM lookup by customer id
- `billing`: refund/dispute ticket
- `handoff`: straight to the finalizer (no responder yet)
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from langchain_core.output_parsers import StrOutputParser

from support_agent.errors import ExternalServiceError, QueryValidationError
from support_agent.graph.prompts import CLASSIFY_INTENT_PROMPT, FINALIZE_PROMPT
from support_agent.graph.services import SupportServices
from support_agent.graph.state import ConversationState, Intent
from support_agent.rag.schemas import Citation
from support_agent.tools.ticketing import TicketRequest
from support_agent.utils.logging import get_logger
from support_agent.utils.tracing import traceable

logger = get_logger(__name__)


INTENT_DEFINITIONS: dict[Intent, str] = {
    Intent.FAQ: "general question answerable by knowledge base",
    Intent.ACCOUNT: "look up customer or account details",
    Intent.BILLING: "refunds, payments, disputes, invoices",
    Intent.HANDOFF: "unclear or needs human",
}

CUSTOMER_REF_PATTERN = re.compile(r"(?:customer|account)\s*#?\s*(\d{3,})", re.IGNORECASE)
DIGIT_RUN_PATTERN = re.compile(r"\b(\d{4,})\b")
REFUND_PATTERN = re.compile(r"refund|chargeback|dispute|return", re.IGNORECASE)

UNKNOWN_CUSTOMER = "unknown"
MAX_FINAL_CITATIONS = 3


def extract_customer_id(query: str) -> str | None:
    """Find a customer id: an explicit "customer #"/"account #" phrase first, then any 4+ digit run."""

    match = CUSTOMER_REF_PATTERN.search(query) or DIGIT_RUN_PATTERN.search(query)
    return match.group(1) if match else None


def parse_intent_label(raw: str, fallback: Intent) -> Intent:
    """Map raw classifier output to an `Intent`, using `fallback` for anything unrecognized."""

    try:
        return Intent(raw.strip().lower())
    except ValueError:
        return fallback


def format_citations(citations: Sequence[Citation], limit: int = MAX_FINAL_CITATIONS) -> str:
    return ", ".join(citation.label for citation in list(citations)[:limit])


@traceable(name="ingest_input", run_type="chain")
def ingest_input_node(state: ConversationState) -> dict[str, Any]:
    """Trim the query and reject blank input before any model call."""

    query = state.query.strip()
    if not query:
        raise QueryValidationError("Empty query")
    return {"query": query}


@traceable(name="classify_intent", run_type="llm")
def classify_intent_node(state: ConversationState, *, services: SupportServices) -> dict[str, Any]:
    """One-shot classification into the fixed intent label set."""

    chain = CLASSIFY_INTENT_PROMPT | services.classifier_llm | StrOutputParser()
    try:
        raw = chain.invoke(
            {
                "labels": ", ".join(intent.value for intent in Intent),
                "definitions": "\n".join(
                    f"- {intent.value}: {description}" for intent, description in INTENT_DEFINITIONS.items()
                ),
                "query": state.query,
            }
        )
    except Exception as exc:
        raise ExternalServiceError("intent-classifier", str(exc)) from exc

    intent = parse_intent_label(raw, services.unknown_intent_fallback)
    if intent.value != raw.strip().lower():
        logger.warning(
            "Unrecognized intent label; applying fallback policy",
            extra={"context": {"raw_label": raw[:80], "fallback": intent.value}},
        )

    logger.info("Intent classified", extra={"context": {"intent": intent.value}})
    return {"intent": intent}


def route_by_intent(state: ConversationState) -> Intent | None:
    """Routing key for the conditional edge after classification."""

    return state.intent


@traceable(name="faq_agent", run_type="chain")
def faq_agent_node(state: ConversationState, *, services: SupportServices) -> dict[str, Any]:
    """Answer from the knowledge base through the synthesizer."""

    result = services.synthesizer.synthesize(state.query)
    return {
        "answer": result.answer,
        "confidence": result.confidence,
        "citations": result.citations,
    }


@traceable(name="account_agent", run_type="tool")
def account_agent_node(state: ConversationState, *, services: SupportServices) -> dict[str, Any]:
    """Look up the customer referenced in the query."""

    customer_id = extract_customer_id(state.query)
    if customer_id is None:
        return {
            "answer": "Please provide a customer ID to proceed with account lookup.",
            "confidence": 0.4,
        }

    try:
        result = services.crm.lookup(customer_id)
    except Exception as exc:
        raise ExternalServiceError("crm", str(exc)) from exc

    if not result.found or result.customer is None:
        return {"answer": f"Customer {customer_id} was not found.", "confidence": 0.6}

    customer = result.customer
    return {
        "customer_id": customer_id,
        "answer": (
            f"Customer {customer.id}: {customer.name} (tier: {customer.tier}). "
            f"Current balance: {customer.balance}."
        ),
        "confidence": 0.9,
    }


@traceable(name="billing_agent", run_type="tool")
def billing_agent_node(state: ConversationState, *, services: SupportServices) -> dict[str, Any]:
    """Open a refund ticket when the query mentions a refund or dispute."""

    if not REFUND_PATTERN.search(state.query):
        return {
            "answer": "For billing, please describe your issue (refund, invoice, dispute).",
            "confidence": 0.5,
        }

    digit_run = DIGIT_RUN_PATTERN.search(state.query)
    customer_id = state.customer_id or (digit_run.group(1) if digit_run else UNKNOWN_CUSTOMER)

    request = TicketRequest(
        customer_id=customer_id,
        subject="Refund request",
        description=f"Caller requested refund. Query: {state.query}",
        priority="medium",
    )
    try:
        ticket = services.ticketing.create(request)
    except Exception as exc:
        raise ExternalServiceError("ticketing", str(exc)) from exc

    return {
        "customer_id": customer_id,
        "answer": (
            f"I opened ticket {ticket.id} for your refund request. "
            "You will get updates via email within 24 hours."
        ),
        "confidence": 0.85,
    }


@traceable(name="summarize", run_type="llm")
def summarize_node(state: ConversationState, *, services: SupportServices) -> dict[str, Any]:
    """Rewrite the draft into the final reply; keep the draft if the rewrite fails or is empty."""

    draft = state.answer or ""
    cited = format_citations(state.citations)
    chain = FINALIZE_PROMPT | services.general_llm | StrOutputParser()

    try:
        rewritten = chain.invoke({"draft": draft, "citations": f"CITATIONS: {cited}" if cited else ""})
    except Exception as exc:
        logger.warning(
            "Final rewrite failed; returning draft answer",
            extra={"context": {"error": str(exc)}},
        )
        return {"answer": draft}

    rewritten = rewritten.strip()
    if not rewritten:
        logger.warning("Final rewrite was empty; returning draft answer")
        return {"answer": draft}
    return {"answer": rewritten}


def respond_node(state: ConversationState) -> dict[str, Any]:
    """Terminal pass-through; the finalized state is the response."""

    return {}
