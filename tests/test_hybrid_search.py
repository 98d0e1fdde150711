"""Tests for the hybrid retrieval orchestrator.

A scripted repository records which strategies ran, so the fallback order,
short-circuiting and error fall-through can be checked without real indices.

Author: Hay Hoffman
"""

import pytest
from models.chunk import Chunk
from src.exceptions import InvalidRequestError
from src.retrieval.hybrid_search import HybridSearcher, hybrid_search

DIMENSION = 4


def make_chunk(chunk_id: str, file_path: str = "src/a.ts", start_line: int = 1, **kwargs) -> Chunk:
    return Chunk(
        id=chunk_id,
        source_id="source-1",
        file_path=file_path,
        start_line=start_line,
        end_line=start_line + 9,
        content=kwargs.pop("content", f"content of {chunk_id}"),
        **kwargs,
    )


class ScriptedRepository:
    """Repository returning preset results (or raising) per strategy."""

    def __init__(self, vector=None, keyword=None, fallback=None, recent=None):
        self.responses = {
            "vector": vector or [],
            "keyword": keyword or [],
            "fallback": fallback or [],
            "recent": recent or [],
        }
        self.calls: list[tuple[str, tuple]] = []

    def _respond(self, name: str, *args):
        self.calls.append((name, args))
        response = self.responses[name]
        if isinstance(response, Exception):
            raise response
        return list(response)

    def vector_search(self, source_id, query_vector, top_k, match_threshold=0.1):
        return self._respond("vector", source_id, list(query_vector), top_k, match_threshold)

    def keyword_search(self, source_id, normalized_query, top_k):
        return self._respond("keyword", source_id, normalized_query, top_k)

    def fallback_search(self, source_id, or_filter, top_k):
        return self._respond("fallback", source_id, or_filter, top_k)

    def most_recent_chunks(self, source_id, top_k):
        return self._respond("recent", source_id, top_k)

    @property
    def called(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def query_vector() -> list[float]:
    return [0.1, 0.2, 0.3, 0.4]


class TestStrategyOrder:
    """Tests for the vector -> keyword -> fallback -> recent chain."""

    def test_vector_results_short_circuit(self, query_vector):
        repo = ScriptedRepository(
            vector=[make_chunk("v1", similarity=0.9)],
            keyword=[make_chunk("k1")],
        )
        searcher = HybridSearcher(repo, embedding_dimension=DIMENSION)

        results = searcher.search("source-1", "auth", query_vector)

        assert [c.id for c in results] == ["v1"]
        assert repo.called == ["vector"]

    def test_single_vector_result_still_preferred(self, query_vector):
        repo = ScriptedRepository(
            vector=[make_chunk("v1", similarity=0.2)],
            keyword=[make_chunk(f"k{i}", start_line=i * 10 + 1) for i in range(5)],
        )

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth", query_vector)

        assert [c.id for c in results] == ["v1"]

    def test_without_vector_starts_at_keyword(self):
        repo = ScriptedRepository(keyword=[make_chunk("k1")])

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth retry?")

        assert [c.id for c in results] == ["k1"]
        assert repo.called == ["keyword"]
        assert repo.calls[0][1][1] == "auth retry"

    def test_falls_through_to_or_filter(self):
        repo = ScriptedRepository(fallback=[make_chunk("f1")])

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth retry")

        assert [c.id for c in results] == ["f1"]
        assert repo.called == ["keyword", "fallback"]
        assert repo.calls[1][1][1] == (
            "content.ilike.%auth%,file_path.ilike.%auth%,"
            "content.ilike.%retry%,file_path.ilike.%retry%"
        )

    def test_falls_through_to_recent(self, query_vector):
        repo = ScriptedRepository(recent=[make_chunk("r1")])

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth", query_vector)

        assert [c.id for c in results] == ["r1"]
        assert repo.called == ["vector", "keyword", "fallback", "recent"]

    def test_empty_source_returns_empty(self):
        repo = ScriptedRepository()

        assert HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth") == []

    def test_blank_question_skips_keyword_search(self):
        repo = ScriptedRepository(recent=[make_chunk("r1")])

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "?!")

        assert [c.id for c in results] == ["r1"]
        assert repo.called == ["fallback", "recent"]


class TestErrorHandling:
    """Tests for strategy failures and validation."""

    def test_strategy_errors_fall_through(self, query_vector):
        repo = ScriptedRepository(
            vector=ConnectionError("vector store down"),
            keyword=RuntimeError("bad query"),
            fallback=[make_chunk("f1")],
        )

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth", query_vector)

        assert [c.id for c in results] == ["f1"]
        assert repo.called == ["vector", "keyword", "fallback"]

    def test_all_but_recent_failing_still_returns_chunks(self):
        repo = ScriptedRepository(
            keyword=RuntimeError("bad query"),
            fallback=ValueError("bad filter"),
            recent=[make_chunk("r1")],
        )

        assert [c.id for c in HybridSearcher(repo).search("source-1", "auth")] == ["r1"]

    def test_dimension_mismatch_skips_vector_search(self):
        repo = ScriptedRepository(vector=[make_chunk("v1")], keyword=[make_chunk("k1")])

        results = HybridSearcher(repo, embedding_dimension=DIMENSION).search("source-1", "auth", [0.1, 0.2])

        assert [c.id for c in results] == ["k1"]
        assert "vector" not in repo.called

    def test_match_threshold_is_forwarded(self, query_vector):
        repo = ScriptedRepository(vector=[make_chunk("v1")])

        HybridSearcher(repo, embedding_dimension=DIMENSION, match_threshold=0.25).search(
            "source-1", "auth", query_vector
        )

        assert repo.calls[0][1][3] == 0.25

    @pytest.mark.parametrize("source_id", ["", "   ", None])
    def test_blank_source_id_is_rejected(self, source_id):
        repo = ScriptedRepository(recent=[make_chunk("r1")])

        with pytest.raises(InvalidRequestError) as exc_info:
            HybridSearcher(repo).search(source_id, "auth")

        assert exc_info.value.field == "source_id"
        assert repo.calls == []


class TestResultShaping:
    """Tests for top_k bounds and ranking of the winning set."""

    def test_top_k_bounds_results(self):
        repo = ScriptedRepository(keyword=[make_chunk(f"k{i}", start_line=i * 10 + 1) for i in range(10)])

        results = HybridSearcher(repo).search("source-1", "auth", top_k=3)

        assert len(results) == 3
        assert repo.calls[0][1][2] == 3

    def test_winning_results_are_ranked(self):
        repo = ScriptedRepository(keyword=[
            make_chunk("doc", file_path="docs/TRD.md", content="auth is configured in src/lib/auth.ts"),
            make_chunk("code", file_path="src/lib/auth.ts", content="export const auth = betterAuth({});"),
        ])

        results = HybridSearcher(repo).search("source-1", "Where is auth handled?")

        assert [c.id for c in results] == ["code", "doc"]

    def test_module_entry_point(self):
        repo = ScriptedRepository(keyword=[make_chunk("k1")])

        assert [c.id for c in hybrid_search(repo, "source-1", "auth")] == ["k1"]
