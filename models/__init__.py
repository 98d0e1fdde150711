"""Data models for the code evidence QA service.

This package contains all Pydantic models used throughout the application.
"""

from .chunk import Chunk, Citation, RetrievalCandidate, sanitize_chunk_text
from .history import QAHistoryEntry
from .qa import AskResponse, RefactorResponse
from .refactor import ParsedCitation, ParsedSuggestion, RefactorSuggestion

__all__ = [
    # Chunks & citations
    "Chunk",
    "Citation",
    "RetrievalCandidate",
    "sanitize_chunk_text",
    # Refactor suggestions
    "RefactorSuggestion",
    "ParsedCitation",
    "ParsedSuggestion",
    # Responses
    "AskResponse",
    "RefactorResponse",
    # History
    "QAHistoryEntry",
]
