"""LangGraph glue: strict nodes and routers, shape checks, commit-on-success checkpoints.

`StateGraph` runs the workflow. This module adds the guarantees the support
flow relies on:

- partial updates are validated against `ConversationState` before they are
  written, so unknown fields or out-of-range values abort the run;
- a router label missing from its edge mapping raises `RoutingError`;
- cycles and nodes unreachable from START are rejected at compile time;
- the graph is compiled without a LangGraph checkpointer and the final state
  is stored only after `invoke` returns, so a failed run never overwrites the
  previous checkpoint for that thread.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from typing import Any

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from support_agent.errors import GraphDefinitionError, RoutingError
from support_agent.graph.checkpoint import CheckpointStore, InMemoryCheckpointStore
from support_agent.graph.state import ConversationState
from support_agent.utils.logging import get_logger

logger = get_logger(__name__)

NodeFn = Callable[[ConversationState], Mapping[str, Any] | None]
RouterFn = Callable[[ConversationState], Hashable]


def _label_name(label: Any) -> str:
    return str(getattr(label, "value", label))


def strict_node(name: str, fn: NodeFn) -> Callable[[ConversationState], dict[str, Any] | None]:
    """Wrap a node so its partial update is validated by `ConversationState.merge`."""

    def _node(state: ConversationState) -> dict[str, Any] | None:
        try:
            partial = dict(fn(state) or {})
            merged = state.merge(partial)
        except Exception as exc:
            logger.error(
                "Node failed; aborting run",
                extra={"context": {"node": name, "error_type": type(exc).__name__, "error": str(exc)}},
            )
            raise
        logger.debug("Node completed", extra={"context": {"node": name, "fields": sorted(partial)}})
        if not partial:
            return None
        return {key: getattr(merged, key) for key in partial}

    return _node


def strict_router(source: str, router: RouterFn, targets: Mapping[Hashable, str]) -> RouterFn:
    """Wrap a router so an undeclared label raises `RoutingError` instead of a bare `KeyError`."""

    allowed = [_label_name(key) for key in targets]

    def _route(state: ConversationState) -> Hashable:
        label = router(state)
        try:
            declared = label in targets
        except TypeError:
            declared = False
        if not declared:
            raise RoutingError(source, label, allowed)
        return label

    return _route


def _check_shape(compiled: CompiledStateGraph, node_names: set[str]) -> None:
    drawn = compiled.get_graph()
    successors: dict[str, list[str]] = {}
    for edge in drawn.edges:
        successors.setdefault(edge.source, []).append(edge.target)

    # Iterative DFS; a back edge to a node still on the stack is a cycle.
    visiting: set[str] = {START}
    done: set[str] = set()
    stack: list[tuple[str, list[str]]] = [(START, list(successors.get(START, [])))]
    while stack:
        node, pending = stack[-1]
        if not pending:
            stack.pop()
            visiting.discard(node)
            done.add(node)
            continue
        nxt = pending.pop()
        if nxt == END or nxt in done:
            continue
        if nxt in visiting:
            raise GraphDefinitionError(f"Cycle detected through '{node}' -> '{nxt}'")
        visiting.add(nxt)
        stack.append((nxt, list(successors.get(nxt, []))))

    unreachable = sorted(node_names - done)
    if unreachable:
        raise GraphDefinitionError(f"Nodes not reachable from START: {', '.join(unreachable)}")


class SupportWorkflow:
    """Compiled graph plus the checkpoint store it commits to after each successful run."""

    def __init__(self, graph: CompiledStateGraph, checkpointer: CheckpointStore) -> None:
        self.graph = graph
        self.checkpointer = checkpointer

    def invoke(self, inputs: Mapping[str, Any], *, thread_id: str) -> ConversationState:
        """Run from START to END and checkpoint the final state under `thread_id`.

        Any exception raised by a node, a router or a state merge propagates
        unchanged and nothing is checkpointed.
        """

        start = ConversationState.model_validate(dict(inputs))
        result = self.graph.invoke(
            start.model_dump(exclude_unset=True),
            config={"configurable": {"thread_id": thread_id}},
        )
        state = ConversationState.model_validate(result)

        self.checkpointer.put(thread_id, state)
        logger.info(
            "Graph run completed",
            extra={
                "context": {
                    "thread_id": thread_id,
                    "intent": _label_name(state.intent) if state.intent else None,
                }
            },
        )
        return state

    def get_state(self, thread_id: str) -> ConversationState | None:
        return self.checkpointer.get(thread_id)


def compile_workflow(graph: StateGraph, *, checkpointer: CheckpointStore | None = None) -> SupportWorkflow:
    """Compile `graph`, reject malformed shapes, and attach the checkpoint store."""

    try:
        compiled = graph.compile()
    except ValueError as exc:
        raise GraphDefinitionError(str(exc)) from exc

    _check_shape(compiled, set(graph.nodes))
    return SupportWorkflow(compiled, checkpointer if checkpointer is not None else InMemoryCheckpointStore())
