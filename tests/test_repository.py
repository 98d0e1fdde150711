"""Tests for the in-memory chunk repository and the chunk loader.

Author: Hay Hoffman
"""

import json
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest
from models.chunk import Chunk
from src.retrieval.chunk_loader import ChunkLoader, load_repository
from src.retrieval.repository import ChunkRepository, InMemoryChunkRepository, tokenize_full_text

DIMENSION = 4


def make_chunk(chunk_id: str, file_path: str, content: str, source_id: str = "source-1", **kwargs) -> Chunk:
    return Chunk(
        id=chunk_id,
        source_id=source_id,
        file_path=file_path,
        start_line=kwargs.pop("start_line", 1),
        end_line=kwargs.pop("end_line", 10),
        content=content,
        **kwargs,
    )


@pytest.fixture
def sample_chunks() -> list[Chunk]:
    """Chunks of one source plus one chunk of another source."""
    return [
        make_chunk("c1", "src/lib/auth.ts", "export async function login(user) { return session; }"),
        make_chunk("c2", "src/lib/retry.ts", "export const MAX_RETRIES = 3; function retryRequest() {}"),
        make_chunk("c3", "docs/README.md", "Authentication uses sessions and retry policies."),
        make_chunk("c4", "src/auth.ts", "login from other source", source_id="source-2"),
    ]


@pytest.fixture
def sample_embeddings() -> list[list[float]]:
    return [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [1.0, 0.0, 0.0, 0.0],
    ]


@pytest.fixture
def repository(sample_chunks, sample_embeddings) -> InMemoryChunkRepository:
    repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)
    repo.add_chunks(sample_chunks, sample_embeddings)
    return repo


# =============================================================================
# Tokenization
# =============================================================================


class TestTokenizeFullText:
    """Tests for code-aware full-text tokenization."""

    def test_splits_camel_case(self):
        assert tokenize_full_text("HTTPClient") == ["http", "client"]

    def test_splits_snake_case(self):
        assert tokenize_full_text("MAX_RETRIES") == ["max", "retries"]

    def test_drops_stopwords_and_short_tokens(self):
        assert tokenize_full_text("how is the retry done") == ["retry"]


# =============================================================================
# Repository
# =============================================================================


class TestInMemoryChunkRepository:
    """Tests for the FAISS + BM25 backed repository."""

    def test_implements_protocol(self, repository):
        assert isinstance(repository, ChunkRepository)

    def test_count_is_per_source(self, repository):
        assert repository.count("source-1") == 3
        assert repository.count("source-2") == 1
        assert repository.count("missing") == 0

    def test_add_chunks_rejects_misaligned_embeddings(self, sample_chunks):
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)
        with pytest.raises(ValueError):
            repo.add_chunks(sample_chunks, [[1.0, 0.0, 0.0, 0.0]])

    def test_add_chunks_rejects_wrong_dimension(self, sample_chunks):
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)
        with pytest.raises(ValueError):
            repo.add_chunks(sample_chunks[:1], [[1.0, 0.0]])

    def test_failed_add_stores_nothing(self, sample_chunks):
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)

        with pytest.raises(ValueError):
            repo.add_chunks(sample_chunks[:2], [[1.0, 0.0, 0.0, 0.0], [1.0, 0.0]])

        assert repo.count("source-1") == 0
        assert repo.vector_search("source-1", [1.0, 0.0, 0.0, 0.0], top_k=5) == []

    def test_retry_after_failed_add_does_not_duplicate(self, sample_chunks):
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)
        with pytest.raises(ValueError):
            repo.add_chunks(sample_chunks[:2], [[1.0, 0.0, 0.0, 0.0], [1.0, 0.0]])

        repo.add_chunks(sample_chunks[:2], [[1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0]])

        assert repo.count("source-1") == 2

    @pytest.mark.parametrize("vector, accepted", [
        (None, True),
        ([1.0, 0.0, 0.0, 0.0], True),
        ([1.0, 0.0], False),
        ([[1.0, 0.0], [0.0]], False),
        ("abcd", False),
    ])
    def test_accepts_embedding(self, vector, accepted):
        assert InMemoryChunkRepository(embedding_dimension=DIMENSION).accepts_embedding(vector) is accepted

    def test_vector_search_returns_similarity(self, repository):
        results = repository.vector_search("source-1", [0.0, 2.0, 0.0, 0.0], top_k=5)

        assert [chunk.id for chunk in results] == ["c2"]
        assert results[0].similarity == pytest.approx(1.0)

    def test_vector_search_applies_threshold(self, repository):
        query = np.array([1.0, 1.0, 0.0, 0.0])
        results = repository.vector_search("source-1", query, top_k=5, match_threshold=0.8)

        assert results == []

    def test_vector_search_is_scoped_to_source(self, repository):
        results = repository.vector_search("source-2", [1.0, 0.0, 0.0, 0.0], top_k=5)
        assert [chunk.id for chunk in results] == ["c4"]

    def test_vector_search_rejects_wrong_dimension(self, repository):
        with pytest.raises(ValueError):
            repository.vector_search("source-1", [1.0, 0.0], top_k=5)

    def test_vector_search_without_embeddings(self):
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)
        repo.add_chunks([make_chunk("c1", "a.ts", "alpha")])

        assert repo.vector_search("source-1", [1.0, 0.0, 0.0, 0.0], top_k=5) == []

    def test_vector_search_does_not_mutate_stored_chunks(self, repository):
        repository.vector_search("source-1", [1.0, 0.0, 0.0, 0.0], top_k=5)
        stored = repository.most_recent_chunks("source-1", 5)

        assert all(chunk.similarity is None for chunk in stored)

    def test_keyword_search_requires_all_terms(self, repository):
        assert [c.id for c in repository.keyword_search("source-1", "retry request", 5)] == ["c2"]
        assert repository.keyword_search("source-1", "login nonexistentterm", 5) == []

    def test_keyword_search_only_stopwords(self, repository):
        assert repository.keyword_search("source-1", "how is the", 5) == []

    def test_fallback_search_matches_content_or_path(self, repository):
        or_filter = "content.ilike.%session%,file_path.ilike.%retry%"
        results = repository.fallback_search("source-1", or_filter, 5)

        assert [c.id for c in results] == ["c1", "c2", "c3"]

    def test_fallback_search_is_case_insensitive(self, repository):
        results = repository.fallback_search("source-1", "file_path.ilike.%README%", 5)
        assert [c.id for c in results] == ["c3"]

    def test_fallback_search_empty_filter_is_unconstrained(self, repository):
        assert len(repository.fallback_search("source-1", "", 2)) == 2

    def test_fallback_search_rejects_malformed_clause(self, repository):
        with pytest.raises(ValueError):
            repository.fallback_search("source-1", "content.eq.auth", 5)

    def test_most_recent_chunks_orders_by_created_at(self):
        now = datetime.now(timezone.utc)
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)
        repo.add_chunks([
            make_chunk("old", "a.ts", "a", created_at=now - timedelta(days=2)),
            make_chunk("new", "b.ts", "b", created_at=now),
            make_chunk("mid", "c.ts", "c", created_at=now - timedelta(days=1)),
        ])

        assert [c.id for c in repo.most_recent_chunks("source-1", 2)] == ["new", "mid"]

    def test_most_recent_chunks_falls_back_to_insertion_order(self, repository):
        assert [c.id for c in repository.most_recent_chunks("source-1", 3)] == ["c3", "c2", "c1"]

    def test_added_chunks_rebuild_indices(self, repository):
        assert repository.keyword_search("source-1", "webhook", 5) == []

        repository.add_chunks([make_chunk("c5", "src/hooks.ts", "handle webhook events")])

        assert [c.id for c in repository.keyword_search("source-1", "webhook", 5)] == ["c5"]


# =============================================================================
# Chunk Loader
# =============================================================================


class TestChunkLoader:
    """Tests for loading chunk records from JSON."""

    def test_loads_chunks_and_embeddings(self, tmp_path):
        chunks_file = tmp_path / "chunks.json"
        chunks_file.write_text(json.dumps([
            {
                "id": "c1",
                "source_id": "source-1",
                "file_path": "src/auth.ts",
                "start_line": 1,
                "end_line": 5,
                "content": "export function login() {}",
                "embedding": [1.0, 0.0, 0.0, 0.0],
            },
            {
                "id": "bad",
                "source_id": "source-1",
                "file_path": "src/bad.ts",
                "start_line": 9,
                "end_line": 2,
                "content": "invalid range",
            },
        ]), encoding="utf-8")

        loader = ChunkLoader(chunks_file)

        assert [c.id for c in loader.chunks] == ["c1"]
        assert loader.embeddings == [[1.0, 0.0, 0.0, 0.0]]
        assert loader.skipped == 1

    def test_load_repository(self, tmp_path):
        chunks_file = tmp_path / "chunks.json"
        chunks_file.write_text(json.dumps([
            {
                "id": "c1",
                "source_id": "source-1",
                "file_path": "src/auth.ts",
                "start_line": 1,
                "end_line": 5,
                "content": "export function login() {}",
            },
        ]), encoding="utf-8")

        repo = load_repository(chunks_file, embedding_dimension=DIMENSION)

        assert repo.count("source-1") == 1

    def test_wrong_dimension_embedding_is_skipped(self, tmp_path):
        chunks_file = tmp_path / "chunks.json"
        chunks_file.write_text(json.dumps([
            {
                "id": "good",
                "source_id": "source-1",
                "file_path": "src/auth.ts",
                "start_line": 1,
                "end_line": 5,
                "content": "export function login() {}",
                "embedding": [1.0, 0.0, 0.0, 0.0],
            },
            {
                "id": "short",
                "source_id": "source-1",
                "file_path": "src/retry.ts",
                "start_line": 1,
                "end_line": 5,
                "content": "export const MAX_RETRIES = 3;",
                "embedding": [1.0, 0.0],
            },
        ]), encoding="utf-8")
        loader = ChunkLoader(chunks_file)
        repo = InMemoryChunkRepository(embedding_dimension=DIMENSION)

        added = loader.load_into(repo)

        assert added == 1
        assert loader.skipped == 1
        assert [c.id for c in repo.most_recent_chunks("source-1", 5)] == ["good"]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ChunkLoader(tmp_path / "missing.json")

    def test_non_list_raises(self, tmp_path):
        chunks_file = tmp_path / "chunks.json"
        chunks_file.write_text(json.dumps({"id": "c1"}), encoding="utf-8")

        with pytest.raises(ValueError):
            ChunkLoader(chunks_file)
