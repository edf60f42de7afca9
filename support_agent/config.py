"""Configuration and environment validation.

All runtime knobs live on one `Settings` object so the graph, the retriever and
the CLI entry points read configuration the same way.

How this module is designed:
1. `Settings` loads values from environment variables and an optional `.env` file.
2. `validate_env()` checks the variables a specific feature needs, at the
   moment that feature is first used.
3. Nothing is required at import time, so the test suite runs without any
   provider credentials.
"""

from __future__ import annotations

import os
from typing import Iterable

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Note:
    Provider keys are optional at load time. Required-key checks are deferred
    to `validate_env()` so a missing Pinecone key only fails the code path
    that talks to Pinecone.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = Field(default=False, alias="DEBUG")

    groq_api_key: str | None = Field(default=None, alias="GROQ_API_KEY")
    groq_model: str = Field(default="llama-3.1-8b-instant", alias="GROQ_MODEL")
    groq_classifier_model: str = Field(default="llama-3.1-8b-instant", alias="GROQ_CLASSIFIER_MODEL")
    groq_temperature: float = Field(default=0.2, alias="GROQ_TEMPERATURE")
    groq_classifier_temperature: float = Field(default=0.0, alias="GROQ_CLASSIFIER_TEMPERATURE")

    hf_embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2", alias="HF_EMBEDDING_MODEL"
    )
    fallback_embedding_dim: int = Field(default=384, alias="FALLBACK_EMBEDDING_DIM")

    pinecone_api_key: str | None = Field(default=None, alias="PINECONE_API_KEY")
    pinecone_index_name: str = Field(default="support-kb", alias="PINECONE_INDEX_NAME")
    pinecone_cloud: str = Field(default="aws", alias="PINECONE_CLOUD")
    pinecone_region: str = Field(default="us-east-1", alias="PINECONE_REGION")
    pinecone_namespace: str = Field(default="support-docs", alias="PINECONE_NAMESPACE")

    top_k: int = Field(default=5, ge=1, alias="TOP_K")
    unknown_intent_fallback: str = Field(default="faq", alias="UNKNOWN_INTENT_FALLBACK")

    langsmith_api_key: str | None = Field(default=None, alias="LANGSMITH_API_KEY")
    langsmith_project: str = Field(default="support-agent", alias="LANGSMITH_PROJECT")
    langchain_tracing_v2: bool = Field(default=True, alias="LANGCHAIN_TRACING_V2")


settings = Settings()


def validate_env(required_vars: Iterable[str]) -> None:
    """Fail fast if required environment variables are missing.

    Parameters
    ----------
    required_vars:
        Variable names (for example, `GROQ_API_KEY`) that must be present and
        non-empty before a workflow can proceed.

    Raises
    ------
    RuntimeError
        If one or more required variables are missing.
    """

    missing: list[str] = []
    for var_name in required_vars:
        attr_name = var_name.lower()
        if hasattr(settings, attr_name):
            value = getattr(settings, attr_name)
        else:
            value = os.getenv(var_name)

        if value is None or (isinstance(value, str) and value.strip() == ""):
            missing.append(var_name)

    if missing:
        raise RuntimeError(
            "Missing required environment variables: "
            + ", ".join(sorted(missing))
            + ". Please copy .env.example to .env and fill these values."
        )
