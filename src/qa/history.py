"""QA history storage.

The ask flow records every answered question through the narrow QAHistoryStore
protocol; the most recent entries of a source can be listed again.
InMemoryQAHistoryStore implements it for local use and tests.

Author: Hay Hoffman
"""

import logging
from typing import Protocol, runtime_checkable

from models.chunk import Citation
from models.history import QAHistoryEntry
from settings import HISTORY_LIMIT
from src.exceptions import InvalidRequestError

logger = logging.getLogger(__name__)

__all__ = ["QAHistoryStore", "InMemoryQAHistoryStore"]


@runtime_checkable
class QAHistoryStore(Protocol):
    """Append-only store of answered questions, scoped by source identifier."""

    def record_qa(
        self,
        source_id: str,
        question: str,
        answer: str,
        citations: list[Citation],
    ) -> QAHistoryEntry:
        """Persist one answered question. Raises on storage errors."""
        ...

    def recent_history(self, source_id: str, limit: int = HISTORY_LIMIT) -> list[QAHistoryEntry]:
        """Most recent entries of the source, newest first."""
        ...


class InMemoryQAHistoryStore:
    """QAHistoryStore kept in process memory."""

    def __init__(self):
        self._entries: dict[str, list[QAHistoryEntry]] = {}

    def record_qa(
        self,
        source_id: str,
        question: str,
        answer: str,
        citations: list[Citation],
    ) -> QAHistoryEntry:
        """Store an answered question.

        Args:
            source_id: Source the question was asked against
            question: Normalized question text
            answer: Answer returned to the caller
            citations: Citations returned with the answer

        Returns:
            The stored entry
        """
        entry = QAHistoryEntry(
            source_id=source_id,
            question=question,
            answer=answer,
            citations=list(citations),
        )
        self._entries.setdefault(source_id, []).append(entry)
        logger.debug(f"Recorded QA history entry for source {source_id}")
        return entry

    def recent_history(self, source_id: str, limit: int = HISTORY_LIMIT) -> list[QAHistoryEntry]:
        """Newest entries first (by created_at, then recording order).

        Raises:
            InvalidRequestError: If source_id is blank
        """
        if not isinstance(source_id, str) or not source_id.strip():
            raise InvalidRequestError("source_id is required", field="source_id")
        if limit <= 0:
            return []

        entries = self._entries.get(source_id, [])
        ordered = sorted(
            enumerate(entries),
            key=lambda item: (item[1].created_at, item[0]),
            reverse=True,
        )
        return [entry for _, entry in ordered[:limit]]
