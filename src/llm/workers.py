"""
LLM workers for plain-text generation.

Answer and refactor generation both send a short [system, user] conversation
and consume the reply as text; refactor output is parsed downstream.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

__all__ = ["generate_text", "message_text"]

logger = logging.getLogger(__name__)

EMPTY_GENERATION_TEXT = "No answer generated."


# =============================================================================
# Helper Functions
# =============================================================================


def message_text(content: Any) -> str:
    """Flatten message content (string or list of content parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


# =============================================================================
# Core Invocation Functions
# =============================================================================


def generate_text(
    messages: list[BaseMessage],
    llm: BaseChatModel,
) -> str:
    """
    Invoke the LLM and return the reply as text.

    Args:
        messages: Conversation to send (system + user)
        llm: Pre-configured LLM instance with generation settings applied (required)

    Returns:
        Reply text ("No answer generated." when the model returns nothing)

    Raises:
        ValueError: If no LLM instance is provided
        RuntimeError: If the invocation fails

    Example:
        >>> llm = get_cached_llm("gemini-2.0-flash")
        >>> text = generate_text(build_answer_messages(question, chunks), llm)
    """
    if llm is None:
        raise ValueError("LLM instance must be provided explicitly")

    try:
        response = llm.invoke(messages)
    except Exception as e:
        logger.error(f"Text generation failed: {e}")
        raise RuntimeError(f"Failed to generate text: {e}") from e

    text = message_text(getattr(response, "content", response)).strip()
    if not text:
        logger.warning("LLM returned an empty reply")
        return EMPTY_GENERATION_TEXT

    logger.debug(f"Generated {len(text)} characters")
    return text
