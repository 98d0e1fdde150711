"""Hybrid retrieval orchestrator with a layered fallback chain.

Strategies run strictly in order and the first non-empty result wins:

1. vector   - similarity search (only with a query vector of the right size)
2. keyword  - full-text search over chunk content
3. fallback - substring OR filter over content and file path
4. recent   - most recently ingested chunks

Each strategy's failure is logged and treated as "no results", so retrieval
only comes back empty when the source has no chunks at all. Results are never
merged across strategies; the winning set is truncated to top_k and re-ranked.

Author: Hay Hoffman
"""

import logging
from collections.abc import Callable, Sequence

from models.chunk import Chunk
from settings import DEFAULT_TOP_K, EMBEDDING_DIMENSION, VECTOR_MATCH_THRESHOLD
from src.exceptions import InvalidRequestError
from src.retrieval.ranker import rank_retrieved_chunks
from src.retrieval.repository import ChunkRepository
from src.retrieval.terms import build_fallback_or_filter, normalize_text_query

logger = logging.getLogger(__name__)

__all__ = ["HybridSearcher", "hybrid_search", "SearchStrategy"]

# A strategy takes (source_id, question, query_vector, top_k) and returns chunks
SearchStrategy = Callable[[str, str, Sequence[float] | None, int], list[Chunk]]


class HybridSearcher:
    """Vector -> full-text -> keyword-OR -> recency retrieval.

    Attributes:
        repository: Chunk storage collaborator
        embedding_dimension: Required query vector size
        match_threshold: Minimum similarity for vector results
        strategies: Ordered (name, strategy) pairs
    """

    def __init__(
        self,
        repository: ChunkRepository,
        embedding_dimension: int = EMBEDDING_DIMENSION,
        match_threshold: float = VECTOR_MATCH_THRESHOLD,
    ):
        self.repository = repository
        self.embedding_dimension = embedding_dimension
        self.match_threshold = match_threshold
        self.strategies: list[tuple[str, SearchStrategy]] = [
            ("vector", self._vector_strategy),
            ("keyword", self._keyword_strategy),
            ("fallback", self._fallback_strategy),
            ("recent", self._recent_strategy),
        ]

    def search(
        self,
        source_id: str,
        question: str,
        query_vector: Sequence[float] | None = None,
        top_k: int = DEFAULT_TOP_K,
    ) -> list[Chunk]:
        """Run the fallback chain and rank the first non-empty result set.

        Args:
            source_id: Source to search
            question: Question text
            query_vector: Optional dense query embedding
            top_k: Maximum number of chunks to return

        Returns:
            Ranked chunks (empty only when the source has no chunks)

        Raises:
            InvalidRequestError: If source_id is blank
        """
        if not isinstance(source_id, str) or not source_id.strip():
            raise InvalidRequestError("source_id is required for retrieval", field="source_id")
        question = question or ""

        for name, strategy in self.strategies:
            try:
                results = strategy(source_id, question, query_vector, top_k)
            except Exception as e:
                logger.error(f"{name} search failed for source {source_id}: {e}", exc_info=True)
                continue

            if results:
                logger.info(f"Retrieved {len(results)} chunks via {name} search")
                return rank_retrieved_chunks(results[:top_k], question, top_k)

            logger.debug(f"{name} search returned no results, falling through")

        logger.warning(f"No chunks retrieved for source {source_id}")
        return []

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _vector_strategy(
        self,
        source_id: str,
        question: str,
        query_vector: Sequence[float] | None,
        top_k: int,
    ) -> list[Chunk]:
        if query_vector is None:
            return []

        if len(query_vector) != self.embedding_dimension:
            logger.error(
                f"Vector search skipped due to embedding dimension mismatch. "
                f"Expected {self.embedding_dimension}, got {len(query_vector)}."
            )
            return []

        return self.repository.vector_search(
            source_id, query_vector, top_k, match_threshold=self.match_threshold
        )

    def _keyword_strategy(
        self,
        source_id: str,
        question: str,
        query_vector: Sequence[float] | None,
        top_k: int,
    ) -> list[Chunk]:
        normalized_query = normalize_text_query(question)
        if not normalized_query:
            return []
        return self.repository.keyword_search(source_id, normalized_query, top_k)

    def _fallback_strategy(
        self,
        source_id: str,
        question: str,
        query_vector: Sequence[float] | None,
        top_k: int,
    ) -> list[Chunk]:
        return self.repository.fallback_search(source_id, build_fallback_or_filter(question), top_k)

    def _recent_strategy(
        self,
        source_id: str,
        question: str,
        query_vector: Sequence[float] | None,
        top_k: int,
    ) -> list[Chunk]:
        return self.repository.most_recent_chunks(source_id, top_k)


def hybrid_search(
    repository: ChunkRepository,
    source_id: str,
    question: str,
    query_vector: Sequence[float] | None = None,
    top_k: int = DEFAULT_TOP_K,
) -> list[Chunk]:
    """Single entry point combining the fallback chain and the ranker."""
    return HybridSearcher(repository).search(source_id, question, query_vector, top_k)
