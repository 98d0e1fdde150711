"""Chunk repository interface and an in-memory reference implementation.

The retrieval core consumes chunk storage through the narrow ChunkRepository
protocol: vector similarity search, full-text search, substring OR-filter
search and "most recent" retrieval, all scoped to one source.

InMemoryChunkRepository implements the protocol for local indexes and tests:
- FAISS inner-product index over L2-normalized embeddings (cosine similarity)
- BM25 full-text search with web-search style all-terms matching
- ilike-style OR filter evaluation (``field.ilike.%term%`` clauses)
- Recency by ``created_at`` (insertion order when absent)

Indices are built lazily per source and rebuilt after new chunks are added;
queries never mutate state.

Author: Hay Hoffman
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

import faiss
import numpy as np
from rank_bm25 import BM25Okapi

from models.chunk import Chunk
from settings import EMBEDDING_DIMENSION, FULL_TEXT_STOPWORDS, VECTOR_MATCH_THRESHOLD

logger = logging.getLogger(__name__)

__all__ = ["ChunkRepository", "InMemoryChunkRepository", "tokenize_full_text"]

# Pre-compiled regex patterns for tokenization
_CAMEL_CASE_PATTERN_1 = re.compile(r'(?<=[a-z])(?=[A-Z])')  # lowercase -> uppercase
_CAMEL_CASE_PATTERN_2 = re.compile(r'(?<=[A-Z])(?=[A-Z][a-z])')  # HTTPSServer -> HTTPS Server
_UNDERSCORE_PATTERN = re.compile(r'_+')
_NON_ALPHANUM_PATTERN = re.compile(r'[^a-zA-Z0-9\s]')
_FILTER_CLAUSE_PATTERN = re.compile(r'^(content|file_path)\.ilike\.%(.*)%$', re.DOTALL)

_MIN_TOKEN_LENGTH = 3


def tokenize_full_text(text: str, stopwords: frozenset[str] = FULL_TEXT_STOPWORDS) -> list[str]:
    """Code-aware tokenization for full-text search.

    Examples:
    - "HTTPClient" -> ["http", "client"]
    - "MAX_RETRIES" -> ["max", "retries"]

    Args:
        text: Input text to tokenize
        stopwords: Tokens to drop

    Returns:
        list of lowercase tokens
    """
    text = _CAMEL_CASE_PATTERN_1.sub(' ', text)
    text = _CAMEL_CASE_PATTERN_2.sub(' ', text)
    text = _UNDERSCORE_PATTERN.sub(' ', text)
    text = _NON_ALPHANUM_PATTERN.sub(' ', text)

    return [
        token for token in text.lower().split()
        if len(token) >= _MIN_TOKEN_LENGTH and token not in stopwords
    ]


@runtime_checkable
class ChunkRepository(Protocol):
    """Queryable chunk storage scoped by source identifier."""

    def vector_search(
        self,
        source_id: str,
        query_vector: Sequence[float],
        top_k: int,
        match_threshold: float = VECTOR_MATCH_THRESHOLD,
    ) -> list[Chunk]:
        """Similarity search; results carry ``similarity``. Raises on transport errors."""
        ...

    def keyword_search(self, source_id: str, normalized_query: str, top_k: int) -> list[Chunk]:
        """Full-text search over chunk content."""
        ...

    def fallback_search(self, source_id: str, or_filter: str, top_k: int) -> list[Chunk]:
        """Substring search with a comma-separated ``field.ilike.%term%`` OR filter."""
        ...

    def most_recent_chunks(self, source_id: str, top_k: int) -> list[Chunk]:
        """Most recently ingested chunks of the source."""
        ...


@dataclass
class _SourceIndex:
    """Lazily built search structures for one source."""

    chunks: list[Chunk]
    token_sets: list[frozenset[str]] = field(default_factory=list)
    bm25: BM25Okapi | None = None
    vector_index: faiss.Index | None = None
    vector_positions: list[int] = field(default_factory=list)


class InMemoryChunkRepository:
    """In-memory ChunkRepository backed by FAISS and BM25.

    Attributes:
        embedding_dimension: Expected size of chunk and query embeddings
    """

    def __init__(self, embedding_dimension: int = EMBEDDING_DIMENSION):
        self.embedding_dimension = embedding_dimension
        self._chunks: dict[str, list[Chunk]] = {}
        self._embeddings: dict[str, dict[int, np.ndarray]] = {}
        self._indices: dict[str, _SourceIndex] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def add_chunks(
        self,
        chunks: Sequence[Chunk],
        embeddings: Sequence[Sequence[float] | None] | None = None,
    ) -> int:
        """Add chunks (and optional embeddings aligned by position).

        Args:
            chunks: Chunks to store
            embeddings: Optional embedding per chunk (None entries allowed)

        Returns:
            Number of chunks added

        Raises:
            ValueError: If embeddings are misaligned or have the wrong dimension;
                nothing is stored in that case
        """
        if embeddings is not None and len(embeddings) != len(chunks):
            raise ValueError(
                f"Got {len(embeddings)} embeddings for {len(chunks)} chunks"
            )

        vectors = [
            self._validate_embedding(chunk, embeddings[i] if embeddings is not None else None)
            for i, chunk in enumerate(chunks)
        ]

        for chunk, array in zip(chunks, vectors):
            source_chunks = self._chunks.setdefault(chunk.source_id, [])
            position = len(source_chunks)
            source_chunks.append(chunk)

            if array is not None:
                self._embeddings.setdefault(chunk.source_id, {})[position] = array

            # Invalidate lazily built indices
            self._indices.pop(chunk.source_id, None)

        logger.info(f"Added {len(chunks)} chunks to in-memory repository")
        return len(chunks)

    def accepts_embedding(self, vector: Sequence[float] | None) -> bool:
        """Whether a (possibly absent) embedding has the repository's dimension."""
        if vector is None:
            return True
        try:
            return np.asarray(vector, dtype=np.float32).shape == (self.embedding_dimension,)
        except (TypeError, ValueError):
            return False

    def _validate_embedding(self, chunk: Chunk, vector: Sequence[float] | None) -> np.ndarray | None:
        if vector is None:
            return None
        if not self.accepts_embedding(vector):
            raise ValueError(
                f"Embedding for chunk {chunk.id} must be "
                f"{self.embedding_dimension}-dimensional"
            )
        return np.asarray(vector, dtype=np.float32)

    def count(self, source_id: str) -> int:
        """Number of chunks stored for a source."""
        return len(self._chunks.get(source_id, []))

    # ------------------------------------------------------------------
    # Index construction
    # ------------------------------------------------------------------

    def _get_index(self, source_id: str) -> _SourceIndex | None:
        """Return (building if needed) the search structures for a source."""
        chunks = self._chunks.get(source_id)
        if not chunks:
            return None

        index = self._indices.get(source_id)
        if index is not None:
            return index

        index = _SourceIndex(chunks=list(chunks))

        # Full-text structures
        tokenized_corpus = [tokenize_full_text(chunk.content) for chunk in chunks]
        index.token_sets = [frozenset(tokens) for tokens in tokenized_corpus]
        if any(tokenized_corpus):
            index.bm25 = BM25Okapi(tokenized_corpus)

        # Vector structures
        vectors = self._embeddings.get(source_id, {})
        if vectors:
            index.vector_positions = sorted(vectors)
            matrix = np.stack([vectors[pos] for pos in index.vector_positions]).astype(np.float32)
            faiss.normalize_L2(matrix)
            vector_index = faiss.IndexFlatIP(self.embedding_dimension)
            vector_index.add(matrix)
            index.vector_index = vector_index

        logger.info(
            f"Built indices for source {source_id}: {len(chunks)} chunks, "
            f"{len(index.vector_positions)} vectors"
        )
        self._indices[source_id] = index
        return index

    # ------------------------------------------------------------------
    # ChunkRepository protocol
    # ------------------------------------------------------------------

    def vector_search(
        self,
        source_id: str,
        query_vector: Sequence[float],
        top_k: int,
        match_threshold: float = VECTOR_MATCH_THRESHOLD,
    ) -> list[Chunk]:
        """Cosine-similarity search above match_threshold.

        Raises:
            ValueError: If the query vector has the wrong dimension
        """
        query = np.asarray(query_vector, dtype=np.float32)
        if query.shape != (self.embedding_dimension,):
            raise ValueError(
                f"Query vector must be {self.embedding_dimension}-dimensional, "
                f"got {query.shape}"
            )

        index = self._get_index(source_id)
        if index is None or index.vector_index is None or top_k <= 0:
            return []

        query = query.reshape(1, -1).copy()
        faiss.normalize_L2(query)
        similarities, positions = index.vector_index.search(
            query, min(top_k, index.vector_index.ntotal)
        )

        results: list[Chunk] = []
        for similarity, idx in zip(similarities[0], positions[0]):
            if idx < 0 or not similarity > match_threshold:
                continue
            chunk = index.chunks[index.vector_positions[int(idx)]]
            results.append(chunk.model_copy(update={"similarity": float(similarity)}))

        return results

    def keyword_search(self, source_id: str, normalized_query: str, top_k: int) -> list[Chunk]:
        """BM25-ordered search requiring every query token to appear in the chunk."""
        query_tokens = list(dict.fromkeys(tokenize_full_text(normalized_query)))
        index = self._get_index(source_id)
        if not query_tokens or index is None or index.bm25 is None or top_k <= 0:
            return []

        scores = index.bm25.get_scores(query_tokens)
        matches = [
            (float(scores[pos]), pos)
            for pos, token_set in enumerate(index.token_sets)
            if all(token in token_set for token in query_tokens)
        ]
        matches.sort(key=lambda x: (-x[0], x[1]))

        return [index.chunks[pos] for _, pos in matches[:top_k]]

    def fallback_search(self, source_id: str, or_filter: str, top_k: int) -> list[Chunk]:
        """Case-insensitive substring OR search over content and file path.

        An empty filter is unconstrained.

        Raises:
            ValueError: If a filter clause is malformed
        """
        clauses = self._parse_or_filter(or_filter)
        chunks = self._chunks.get(source_id, [])
        if top_k <= 0:
            return []

        if not clauses:
            return list(chunks[:top_k])

        results: list[Chunk] = []
        for chunk in chunks:
            fields = {"content": chunk.content.lower(), "file_path": chunk.file_path.lower()}
            if any(term in fields[name] for name, term in clauses):
                results.append(chunk)
                if len(results) >= top_k:
                    break

        return results

    def most_recent_chunks(self, source_id: str, top_k: int) -> list[Chunk]:
        """Newest chunks first (by created_at, then insertion order)."""
        chunks = self._chunks.get(source_id, [])
        if top_k <= 0:
            return []

        ordered = sorted(
            enumerate(chunks),
            key=lambda item: (
                item[1].created_at is not None,
                item[1].created_at or datetime.min,
                item[0],
            ),
            reverse=True,
        )
        return [chunk for _, chunk in ordered[:top_k]]

    @staticmethod
    def _parse_or_filter(or_filter: str) -> list[tuple[str, str]]:
        """Parse ``field.ilike.%term%`` clauses into (field, lowercase term) pairs."""
        clauses: list[tuple[str, str]] = []
        for raw_clause in or_filter.split(","):
            raw_clause = raw_clause.strip()
            if not raw_clause:
                continue
            match = _FILTER_CLAUSE_PATTERN.match(raw_clause)
            if not match:
                raise ValueError(f"Malformed filter clause: {raw_clause!r}")
            clauses.append((match.group(1), match.group(2).lower()))
        return clauses
