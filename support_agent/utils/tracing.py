"""LangSmith tracing helpers.

Tracing stays optional: without the `langsmith` package (or without an API
key) the decorator below is a no-op and graph runs are not exported.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Any, TypeVar

from support_agent.config import settings

F = TypeVar("F", bound=Callable[..., Any])


def configure_langsmith_tracing() -> bool:
    """Export tracing env flags and return whether tracing is enabled."""

    enabled = bool(settings.langchain_tracing_v2) and bool(settings.langsmith_api_key)
    os.environ["LANGCHAIN_TRACING_V2"] = "true" if enabled else "false"

    if settings.langsmith_project:
        os.environ["LANGSMITH_PROJECT"] = settings.langsmith_project

    if settings.langsmith_api_key:
        os.environ["LANGSMITH_API_KEY"] = settings.langsmith_api_key

    return enabled


def traceable(*, name: str, run_type: str = "chain") -> Callable[[F], F]:
    """Return the LangSmith trace decorator if available, else a no-op decorator."""

    try:
        from langsmith import traceable as langsmith_traceable  # type: ignore
    except ModuleNotFoundError:

        def _decorator(func: F) -> F:
            return func

        return _decorator

    return langsmith_traceable(name=name, run_type=run_type)
