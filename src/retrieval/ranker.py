"""Heuristic relevance ranker for retrieved chunks.

Re-scores a candidate chunk list with path/content heuristics tuned for code
questions, then deduplicates by (file_path, start_line, end_line).

Scoring (higher is better):
- Base: 2 x similarity (vector results only)
- File kind: +1.6 code extension, -1.4 documentation
- Source directories: +0.9 for /src/, /app/ or /lib/ paths
- Implementation intent: +0.8 code, -0.8 documentation
- Data-flow intent: +1.3 /api/ paths, +1.2 route handlers,
  +0.8 network/ORM calls in content, -0.6 UI page files
- Query terms: +0.45 per term in path, +0.15 per term in content
- Data-flow hint terms (data-flow intent only): +0.22 path, +0.08 content

The ranker is a pure function of its inputs: no I/O and no hidden state.

Author: Hay Hoffman
"""

import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from models.chunk import Chunk, RetrievalCandidate
from settings import (
    API_PATH_BOOST,
    CODE_EXTENSIONS,
    CODE_FILE_BOOST,
    DATA_FLOW_HINT_TERMS,
    DATA_FLOW_INTENT_PATTERN,
    DOC_DIR_SEGMENTS,
    DOC_EXTENSIONS,
    DOC_FILE_PENALTY,
    DOC_NAME_MARKERS,
    HINT_CONTENT_WEIGHT,
    HINT_PATH_WEIGHT,
    IMPLEMENTATION_CODE_BOOST,
    IMPLEMENTATION_DOC_PENALTY,
    IMPLEMENTATION_INTENT_PATTERN,
    NETWORK_CALL_BOOST,
    NETWORK_CALL_PATTERN,
    ROUTE_HANDLER_BOOST,
    ROUTE_HANDLER_PATTERN,
    SIMILARITY_WEIGHT,
    SOURCE_DIR_BOOST,
    SOURCE_DIR_SEGMENTS,
    TERM_CONTENT_WEIGHT,
    TERM_PATH_WEIGHT,
    UI_PAGE_PATTERN,
    UI_PAGE_PENALTY,
)
from src.retrieval.terms import extract_query_terms

logger = logging.getLogger(__name__)

__all__ = [
    "QueryIntent",
    "detect_intent",
    "is_code_path",
    "is_doc_path",
    "score_terms",
    "score_chunk",
    "rank_retrieved_chunks",
]

# Pre-compiled patterns
_IMPLEMENTATION_INTENT = re.compile(IMPLEMENTATION_INTENT_PATTERN, re.IGNORECASE)
_DATA_FLOW_INTENT = re.compile(DATA_FLOW_INTENT_PATTERN, re.IGNORECASE)
_ROUTE_HANDLER = re.compile(ROUTE_HANDLER_PATTERN)
_UI_PAGE = re.compile(UI_PAGE_PATTERN)
_NETWORK_CALL = re.compile(NETWORK_CALL_PATTERN)


@dataclass(frozen=True)
class QueryIntent:
    """Intent flags and terms derived once per question."""

    terms: tuple[str, ...]
    seeks_implementation: bool
    seeks_data_flow: bool


def detect_intent(question: str) -> QueryIntent:
    """Classify a question as implementation- and/or data-flow-seeking."""
    return QueryIntent(
        terms=tuple(extract_query_terms(question)),
        seeks_implementation=bool(_IMPLEMENTATION_INTENT.search(question)),
        seeks_data_flow=bool(_DATA_FLOW_INTENT.search(question)),
    )


def _extension(path: str) -> str:
    return PurePosixPath(path).suffix.lower()


def is_code_path(path: str) -> bool:
    """Whether the path has a recognized source-code extension."""
    return _extension(path) in CODE_EXTENSIONS


def is_doc_path(path: str) -> bool:
    """Whether the path is documentation (by extension or by name/location)."""
    lowered = path.lower()
    if _extension(lowered) in DOC_EXTENSIONS:
        return True
    if any(marker in lowered for marker in DOC_NAME_MARKERS):
        return True
    rooted = lowered if lowered.startswith("/") else f"/{lowered}"
    return any(segment in rooted for segment in DOC_DIR_SEGMENTS)


def score_terms(
    path: str,
    content: str,
    terms: tuple[str, ...] | list[str],
    path_weight: float = TERM_PATH_WEIGHT,
    content_weight: float = TERM_CONTENT_WEIGHT,
) -> float:
    """Score lowercase path/content by term containment."""
    score = 0.0
    for term in terms:
        if term in path:
            score += path_weight
        if term in content:
            score += content_weight
    return score


def score_chunk(chunk: Chunk, intent: QueryIntent) -> float:
    """Compute the heuristic relevance score of one chunk.

    Args:
        chunk: Candidate chunk
        intent: Intent derived from the question

    Returns:
        Relevance score (higher is better, may be negative)
    """
    path = chunk.file_path.lower()
    rooted_path = path if path.startswith("/") else f"/{path}"
    content = chunk.content.lower()

    code = is_code_path(path)
    doc = is_doc_path(path)

    score = SIMILARITY_WEIGHT * chunk.similarity if chunk.similarity is not None else 0.0

    if code:
        score += CODE_FILE_BOOST
    if doc:
        score += DOC_FILE_PENALTY

    if any(segment in rooted_path for segment in SOURCE_DIR_SEGMENTS):
        score += SOURCE_DIR_BOOST

    if intent.seeks_implementation:
        if code:
            score += IMPLEMENTATION_CODE_BOOST
        if doc:
            score += IMPLEMENTATION_DOC_PENALTY

    if intent.seeks_data_flow:
        if "/api/" in rooted_path:
            score += API_PATH_BOOST
        if _ROUTE_HANDLER.search(path):
            score += ROUTE_HANDLER_BOOST
        if _NETWORK_CALL.search(content):
            score += NETWORK_CALL_BOOST
        if _UI_PAGE.search(path):
            score += UI_PAGE_PENALTY
        score += score_terms(
            path, content, DATA_FLOW_HINT_TERMS, HINT_PATH_WEIGHT, HINT_CONTENT_WEIGHT
        )

    score += score_terms(path, content, intent.terms)
    return score


def rank_retrieved_chunks(chunks: list[Chunk], question: str, top_k: int) -> list[Chunk]:
    """Re-rank and deduplicate retrieved chunks for a question.

    Sorting is stable: equal scores keep their original relative order.
    After sorting, the first chunk per (file_path, start_line, end_line) is
    kept until top_k unique chunks are collected.

    Args:
        chunks: Candidate chunks (any retrieval strategy)
        question: Original question text
        top_k: Maximum number of chunks to return

    Returns:
        Ranked, deduplicated chunks (at most top_k)

    Example:
        >>> ranked = rank_retrieved_chunks([doc_chunk, code_chunk], "Where is auth handled?", 2)
        >>> ranked[0].file_path
        'src/lib/auth.ts'
    """
    if top_k <= 0 or not chunks:
        return []

    intent = detect_intent(question)
    candidates = [
        RetrievalCandidate(chunk=chunk, score=score_chunk(chunk, intent), position=position)
        for position, chunk in enumerate(chunks)
    ]
    candidates.sort(key=lambda c: (-c.score, c.position))

    ranked: list[Chunk] = []
    seen: set[tuple[str, int, int]] = set()
    for candidate in candidates:
        key = candidate.chunk.dedup_key
        if key in seen:
            continue
        seen.add(key)
        ranked.append(candidate.chunk)
        if len(ranked) >= top_k:
            break

    logger.debug(
        f"Ranked {len(chunks)} candidates -> {len(ranked)} chunks "
        f"(implementation={intent.seeks_implementation}, data_flow={intent.seeks_data_flow})"
    )
    return ranked
