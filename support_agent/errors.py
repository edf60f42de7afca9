"""Exception types raised by the support workflow.

Only `DecodeError` is recovered locally (inside the synthesizer's fallback
chain). Everything else aborts the whole graph invocation: no checkpoint is
written and no partial answer reaches the caller.
"""

from __future__ import annotations


class SupportAgentError(Exception):
    """Base class for all workflow errors."""


class QueryValidationError(SupportAgentError):
    """The incoming query is empty or whitespace-only."""


class RoutingError(SupportAgentError):
    """A router produced a label with no declared target edge."""

    def __init__(self, node: str, label: object, allowed: list[str]) -> None:
        self.node = node
        self.label = label
        self.allowed = allowed
        super().__init__(
            f"Router for node '{node}' returned {label!r}; expected one of: {', '.join(allowed)}"
        )


class GraphDefinitionError(SupportAgentError):
    """The workflow graph is malformed (missing node, dangling edge, cycle)."""


class ExternalServiceError(SupportAgentError):
    """A model, embedding, vector-store or collaborator call failed."""

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(f"{service} call failed: {message}")


class DecodeError(SupportAgentError):
    """One decode tier could not produce a schema-valid answer."""
