"""Question answering over retrieved code evidence.

This module provides citation extraction, refactor suggestion grounding, QA
history storage, and the request flows that tie retrieval and generation together.

Author: Hay Hoffman
"""

from src.qa.citations import extract_citations, format_retrieved_snippets
from src.qa.history import InMemoryQAHistoryStore, QAHistoryStore
from src.qa.refactor import build_fallback_refactor_suggestions, parse_refactor_suggestions
from src.qa.service import QAService

__all__ = [
    "QAService",
    "QAHistoryStore",
    "InMemoryQAHistoryStore",
    "extract_citations",
    "format_retrieved_snippets",
    "parse_refactor_suggestions",
    "build_fallback_refactor_suggestions",
]
