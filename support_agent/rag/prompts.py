"""Prompt templates for grounded knowledge-base answers."""

from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

SYSTEM_PROMPT = """You are a helpful call-center knowledge assistant.

Rules:
1. Use ONLY the provided context to answer.
2. If the context does not contain the answer, say so clearly.
3. Return ONLY valid JSON (no markdown, no code fences) with exactly these keys:
   - answer: string
   - citations: array of {{"source": string, "chunk": integer or null}}
   - confidence: number between 0 and 1
"""

USER_PROMPT_TEMPLATE = """QUESTION:
{query}

CONTEXT:
{context}

Return strict JSON now."""

GROUNDED_ANSWER_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", SYSTEM_PROMPT),
        ("user", USER_PROMPT_TEMPLATE),
    ]
)
