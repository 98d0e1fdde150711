"""Citation extraction for generated answers.

Answers are matched against the chunks used as evidence: a chunk is cited when
the answer mentions its full path or its base filename. When the answer names
no file at all, every retrieved chunk is cited so the answer stays verifiable.

Author: Hay Hoffman
"""

import logging

from models.chunk import Chunk, Citation
from settings import DEFAULT_CITATION_LIMIT, DEFAULT_SNIPPET_LIMIT

logger = logging.getLogger(__name__)

__all__ = ["extract_citations", "format_retrieved_snippets", "dedupe_citations"]


def dedupe_citations(citations: list[Citation]) -> list[Citation]:
    """Keep the first citation per (file_path, start_line, end_line)."""
    seen: set[tuple[str, int, int]] = set()
    unique: list[Citation] = []
    for citation in citations:
        if citation.dedup_key in seen:
            continue
        seen.add(citation.dedup_key)
        unique.append(citation)
    return unique


def _is_mentioned(chunk: Chunk, lowercase_answer: str) -> bool:
    return chunk.file_path.lower() in lowercase_answer or chunk.filename.lower() in lowercase_answer


def extract_citations(
    answer: str,
    chunks: list[Chunk],
    limit: int = DEFAULT_CITATION_LIMIT,
) -> list[Citation]:
    """Build the citation list for an answer.

    Args:
        answer: Generated answer text
        chunks: Chunks used as evidence for the answer (ranked order)
        limit: Maximum number of citations

    Returns:
        Deduplicated citations, mentioned chunks first; all chunks when none
        is mentioned

    Example:
        >>> citations = extract_citations("Check src/retry.ts for retry logic.", chunks)
        >>> [c.file_path for c in citations]
        ['src/retry.ts']
    """
    lowercase_answer = answer.lower()
    mentioned = [Citation.from_chunk(chunk) for chunk in chunks if _is_mentioned(chunk, lowercase_answer)]

    if mentioned:
        selected = mentioned
    else:
        logger.debug("Answer mentions no retrieved file, citing all retrieved chunks")
        selected = [Citation.from_chunk(chunk) for chunk in chunks]

    return dedupe_citations(selected)[:limit]


def format_retrieved_snippets(
    chunks: list[Chunk],
    limit: int = DEFAULT_SNIPPET_LIMIT,
) -> list[Citation]:
    """Format the retrieved chunks as displayable evidence (not filtered by mention)."""
    return [Citation.from_chunk(chunk) for chunk in chunks[:limit]]
