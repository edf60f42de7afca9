"""Chat model factory.

The workflow uses Groq for every model call. Two roles exist: the intent
classifier runs deterministic (temperature 0), while the finalizer and the
answer synthesizer use the general model.
"""

from __future__ import annotations

import os
from typing import Any, Literal

from support_agent.config import settings, validate_env

ModelRole = Literal["classifier", "general"]


def get_groq_chat_model(role: ModelRole = "general") -> Any:
    """Return a Groq chat model configured for the given role.

    Raises
    ------
    RuntimeError
        If required Groq env vars are missing or the package is not installed.
    """

    validate_env(["GROQ_API_KEY"])

    try:
        from langchain_groq import ChatGroq  # type: ignore
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            "langchain-groq is not installed. Add `langchain-groq` to dependencies."
        ) from exc

    os.environ["GROQ_API_KEY"] = settings.groq_api_key or ""

    if role == "classifier":
        return ChatGroq(
            model=settings.groq_classifier_model,
            temperature=settings.groq_classifier_temperature,
        )

    return ChatGroq(model=settings.groq_model, temperature=settings.groq_temperature)
