"""Support workflow graph construction and CLI.

Usage:
`python -m support_agent.graph.graph --query "customer 1001 balance" --thread-id demo`
"""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from functools import partial

from langgraph.graph import StateGraph

from support_agent.config import settings
from support_agent.errors import GraphDefinitionError
from support_agent.graph.checkpoint import CheckpointStore
from support_agent.graph.executor import END, START, SupportWorkflow, compile_workflow, strict_node, strict_router
from support_agent.graph.nodes import (
    account_agent_node,
    billing_agent_node,
    classify_intent_node,
    faq_agent_node,
    ingest_input_node,
    respond_node,
    route_by_intent,
    summarize_node,
)
from support_agent.graph.services import SupportServices, build_services
from support_agent.graph.state import ConversationState, Intent
from support_agent.store.knowledge_store import open_knowledge_store
from support_agent.utils.logging import configure_logging, get_logger
from support_agent.utils.tracing import configure_langsmith_tracing

logger = get_logger(__name__)

# Handoff has no responder yet; it goes straight to the finalizer.
INTENT_ROUTES: dict[Intent, str] = {
    Intent.FAQ: "faq_agent",
    Intent.ACCOUNT: "account_agent",
    Intent.BILLING: "billing_agent",
    Intent.HANDOFF: "summarize",
}


def build_graph(
    services: SupportServices,
    *,
    checkpointer: CheckpointStore | None = None,
) -> SupportWorkflow:
    """Build the support `StateGraph` and compile it with shape checks."""

    missing = [intent.value for intent in Intent if intent not in INTENT_ROUTES]
    if missing:
        raise GraphDefinitionError(f"No route declared for intents: {', '.join(missing)}")

    graph = StateGraph(ConversationState)

    nodes = {
        "ingest_input": ingest_input_node,
        "classify_intent": partial(classify_intent_node, services=services),
        "faq_agent": partial(faq_agent_node, services=services),
        "account_agent": partial(account_agent_node, services=services),
        "billing_agent": partial(billing_agent_node, services=services),
        "summarize": partial(summarize_node, services=services),
        "respond": respond_node,
    }
    for name, fn in nodes.items():
        graph.add_node(name, strict_node(name, fn))

    graph.add_edge(START, "ingest_input")
    graph.add_edge("ingest_input", "classify_intent")
    graph.add_conditional_edges(
        "classify_intent",
        strict_router("classify_intent", route_by_intent, INTENT_ROUTES),
        INTENT_ROUTES,
    )

    graph.add_edge("faq_agent", "summarize")
    graph.add_edge("account_agent", "summarize")
    graph.add_edge("billing_agent", "summarize")
    graph.add_edge("summarize", "respond")
    graph.add_edge("respond", END)

    return compile_workflow(graph, checkpointer=checkpointer)


def run_support_query(app: SupportWorkflow, query: str, *, thread_id: str) -> ConversationState:
    """Run one conversation turn and return the final state."""

    result = app.invoke({"query": query}, thread_id=thread_id)
    logger.info(
        "Support query answered",
        extra={
            "context": {
                "thread_id": thread_id,
                "intent": result.intent.value if result.intent else None,
                "confidence": result.confidence,
                "has_answer": bool(result.answer),
            }
        },
    )
    return result


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Route a customer query through the support workflow")
    parser.add_argument("--query", type=str, required=True)
    parser.add_argument("--thread-id", type=str, default="")
    parser.add_argument("--namespace", type=str, default=settings.pinecone_namespace)
    parser.add_argument("--debug", type=int, default=0)
    return parser


def main() -> None:
    args = _build_arg_parser().parse_args()
    configure_logging(debug=bool(args.debug))
    configure_langsmith_tracing()

    thread_id = args.thread_id or uuid.uuid4().hex

    try:
        with open_knowledge_store(namespace=args.namespace) as store:
            app = build_graph(build_services(store))
            result = run_support_query(app, args.query, thread_id=thread_id)
    except Exception as exc:
        logger.error("Support query failed", extra={"context": {"thread_id": thread_id, "error": str(exc)}})
        print(json.dumps({"ok": False, "error": str(exc)}, ensure_ascii=True))
        sys.exit(1)

    print(json.dumps({"ok": True, "thread_id": thread_id, **result.to_response()}, indent=2, ensure_ascii=True))


if __name__ == "__main__":
    main()
