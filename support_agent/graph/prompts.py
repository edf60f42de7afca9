"""Prompt templates for intent classification and final reply rewriting."""

from __future__ import annotations

from langchain_core.prompts import ChatPromptTemplate

CLASSIFY_INTENT_PROMPT = ChatPromptTemplate.from_template(
    """Classify the USER QUERY into one of: {labels}.
{definitions}
Return ONLY the label.
USER QUERY: {query}"""
)

FINALIZE_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "You are a concise call-center assistant."),
        (
            "user",
            "Base your final reply on this DRAFT ANSWER: {draft}\n{citations}\nReply clearly and helpfully.",
        ),
    ]
)
