"""Prompt templates for LLM-backed answer generation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

NOT_FOUND_SENTINEL = "NOT_FOUND"

GROUNDED_ANSWER_SYSTEM = f"""\
You are a customer-support assistant. Answer the user's question using
**only** the provided context passages, which come from the company's
uploaded documents.

Rules:
1. Answer in one to three short sentences.
2. Do not mention the context, documents, sources or file names.
3. Do not add facts that are not stated in the context.
4. If the context does not answer the question, reply with exactly
   {NOT_FOUND_SENTINEL} and nothing else.
"""


def build_grounded_answer_prompt(query: str, context: str) -> list[BaseMessage]:
    """Assemble the messages for a context-only answer.

    Parameters
    ----------
    query:
        The user question.
    context:
        Retrieved passages, separated by blank lines.
    """
    passages = [p.strip() for p in context.split("\n\n") if p.strip()]
    numbered = "\n\n".join(f"[{i}] {p}" for i, p in enumerate(passages, 1))
    return [
        SystemMessage(content=GROUNDED_ANSWER_SYSTEM),
        HumanMessage(content=f"Context:\n{numbered}\n\nQuestion: {query}"),
    ]
