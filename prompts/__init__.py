"""Prompts module for LLM interactions.

This module contains the prompts used by the Code Evidence QA service:
answer prompts for grounded question answering and refactor prompts for
JSON refactor suggestions.

Author: Hay Hoffman
Version: 2.0
"""

from prompts.answer_prompt import (
    ANSWER_SYSTEM_PROMPT,
    build_answer_messages,
    format_evidence,
)
from prompts.refactor_prompt import (
    REFACTOR_SYSTEM_PROMPT,
    build_refactor_messages,
)

__all__ = [
    # Answer prompts
    "ANSWER_SYSTEM_PROMPT",
    "build_answer_messages",
    "format_evidence",
    # Refactor prompts
    "REFACTOR_SYSTEM_PROMPT",
    "build_refactor_messages",
]
