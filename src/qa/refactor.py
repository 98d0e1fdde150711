"""Refactor suggestion grounding.

Model output is untrusted text. It goes through a pipeline of total functions
(parse -> normalize -> resolve citations -> grounding check), each returning
None or an empty list instead of raising, so one malformed suggestion never
aborts the others:

1. Parse the trimmed text as JSON, else the outermost {...} span
2. Normalize suggestions (non-empty title/rationale/expectedImpact) and their
   citations (non-empty path, integer lines)
3. Resolve citations against evidence: exact (path, start, end) first, then a
   same-path line-range overlap; unresolvable citations are dropped
4. Require at least one signal term of the suggestion text in the cited
   paths/snippets

When the model fails or nothing survives, deterministic template suggestions
are built from the most relevant evidence.

Author: Hay Hoffman
"""

import json
import logging
import re
from typing import Any

from models.chunk import Citation
from models.refactor import ParsedCitation, ParsedSuggestion, RefactorSuggestion
from settings import (
    MARKUP_BOOST,
    MARKUP_EXTENSIONS,
    MAX_FALLBACK_SUGGESTIONS,
    MAX_REFACTOR_SUGGESTIONS,
    STYLE_CONTENT_BOOST,
    STYLE_CONTENT_MARKERS,
    STYLESHEET_BOOST,
    STYLESHEET_EXTENSIONS,
    STYLING_INTENT_PATTERN,
    SUGGESTION_STOPWORDS,
)
from src.qa.citations import dedupe_citations
from src.retrieval.ranker import score_terms
from src.retrieval.terms import extract_query_terms, tokenize

logger = logging.getLogger(__name__)

__all__ = [
    "FALLBACK_TEMPLATES",
    "parse_refactor_suggestions",
    "build_fallback_refactor_suggestions",
    "resolve_citation",
]

_STYLING_INTENT = re.compile(STYLING_INTENT_PATTERN, re.IGNORECASE)
_INTEGER_STRING = re.compile(r"^[+-]?\d+$")

FALLBACK_TEMPLATES: tuple[dict[str, str], ...] = (
    {
        "title": "Extract focused helper functions",
        "rationale": (
            "The retrieved block appears multi-purpose. Splitting responsibilities "
            "reduces cognitive load and makes tests simpler."
        ),
        "expected_impact": "Improves readability and unit-test coverage.",
    },
    {
        "title": "Centralize validation and error handling",
        "rationale": (
            "Validation and failure paths are easier to maintain when handled at "
            "clear boundaries instead of being scattered."
        ),
        "expected_impact": "More consistent runtime behavior and clearer failure messages.",
    },
    {
        "title": "Isolate configuration and constants",
        "rationale": (
            "Hard-coded values and policy decisions are easier to evolve when moved "
            "to well-named constants or config modules."
        ),
        "expected_impact": "Reduces accidental regressions during future changes.",
    },
)


# =============================================================================
# Parsing & Normalization
# =============================================================================


def _extract_json_candidate(raw: str) -> Any | None:
    """Parse raw model text as JSON, falling back to the outermost {...} span."""
    trimmed = raw.strip() if isinstance(raw, str) else ""
    if not trimmed:
        return None

    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        pass

    first_brace = trimmed.find("{")
    last_brace = trimmed.rfind("}")
    if first_brace == -1 or last_brace <= first_brace:
        return None

    try:
        return json.loads(trimmed[first_brace:last_brace + 1])
    except json.JSONDecodeError:
        logger.debug("Model output contained no parseable JSON object")
        return None


def _coerce_integer(value: Any) -> int | None:
    """Accept ints, integral floats and integer strings; reject booleans."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER_STRING.match(value.strip()):
        return int(value.strip())
    return None


def _string_field(record: dict, *names: str) -> str:
    for name in names:
        value = record.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _normalize_citation(value: Any) -> ParsedCitation | None:
    if not isinstance(value, dict):
        return None

    file_path = _string_field(value, "filePath", "file_path")
    start_line = _coerce_integer(value.get("startLine", value.get("start_line")))
    end_line = _coerce_integer(value.get("endLine", value.get("end_line")))
    if not file_path or start_line is None or end_line is None:
        return None

    return ParsedCitation(file_path=file_path, start_line=start_line, end_line=end_line)


def _normalize_suggestion(value: Any) -> ParsedSuggestion | None:
    if not isinstance(value, dict):
        return None

    title = _string_field(value, "title")
    rationale = _string_field(value, "rationale")
    expected_impact = _string_field(value, "expectedImpact", "expected_impact")
    if not title or not rationale or not expected_impact:
        return None

    raw_citations = value.get("citations")
    citations = [
        citation
        for citation in map(_normalize_citation, raw_citations if isinstance(raw_citations, list) else [])
        if citation is not None
    ]

    return ParsedSuggestion(
        title=title,
        rationale=rationale,
        expected_impact=expected_impact,
        citations=citations,
    )


def _normalize_suggestions(parsed: Any) -> list[ParsedSuggestion]:
    """Accept {"suggestions": [...]} or a bare list of suggestions."""
    if isinstance(parsed, dict):
        raw_suggestions = parsed.get("suggestions")
    else:
        raw_suggestions = parsed

    if not isinstance(raw_suggestions, list):
        return []

    return [s for s in map(_normalize_suggestion, raw_suggestions) if s is not None]


# =============================================================================
# Citation Resolution & Grounding
# =============================================================================


def _ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start <= b_end and b_start <= a_end


def resolve_citation(parsed: ParsedCitation, snippets: list[Citation]) -> Citation | None:
    """Map a claimed citation onto an evidence snippet.

    Exact (path, start, end) match wins; otherwise the first snippet of the
    same file whose line range overlaps the claim.
    """
    for snippet in snippets:
        if snippet.dedup_key == (parsed.file_path, parsed.start_line, parsed.end_line):
            return snippet

    for snippet in snippets:
        if snippet.file_path == parsed.file_path and _ranges_overlap(
            snippet.start_line, snippet.end_line, parsed.start_line, parsed.end_line
        ):
            return snippet

    return None


def _is_grounded(suggestion: ParsedSuggestion, citations: list[Citation]) -> bool:
    """Whether the suggestion shares vocabulary with its cited evidence."""
    signal_terms = tokenize(
        f"{suggestion.title} {suggestion.rationale} {suggestion.expected_impact}",
        SUGGESTION_STOPWORDS,
    )
    if not signal_terms:
        return False

    citation_text = "\n".join(
        f"{citation.file_path}\n{citation.snippet}".lower() for citation in citations
    )
    return any(term in citation_text for term in signal_terms)


def _ground_suggestion(
    suggestion: ParsedSuggestion,
    snippets: list[Citation],
) -> RefactorSuggestion | None:
    resolved = [
        citation
        for citation in (resolve_citation(c, snippets) for c in suggestion.citations)
        if citation is not None
    ]
    resolved = dedupe_citations(resolved)

    if not resolved:
        logger.debug(f"Dropping suggestion without resolvable citations: {suggestion.title!r}")
        return None

    if not _is_grounded(suggestion, resolved):
        logger.debug(f"Dropping ungrounded suggestion: {suggestion.title!r}")
        return None

    return RefactorSuggestion(
        title=suggestion.title,
        rationale=suggestion.rationale,
        expected_impact=suggestion.expected_impact,
        citations=resolved,
    )


def parse_refactor_suggestions(raw: str, snippets: list[Citation]) -> list[RefactorSuggestion]:
    """Parse, validate and ground model-proposed refactor suggestions.

    Args:
        raw: Raw model output (expected JSON with a "suggestions" array)
        snippets: Evidence snippets the model was shown

    Returns:
        At most MAX_REFACTOR_SUGGESTIONS grounded suggestions, in model order
        (empty for malformed output)
    """
    parsed = _extract_json_candidate(raw)
    normalized = _normalize_suggestions(parsed)

    grounded = [
        suggestion
        for suggestion in (_ground_suggestion(s, snippets) for s in normalized)
        if suggestion is not None
    ]

    logger.info(f"Grounded {len(grounded)} of {len(normalized)} parsed refactor suggestions")
    return grounded[:MAX_REFACTOR_SUGGESTIONS]


# =============================================================================
# Deterministic Fallback
# =============================================================================


def _score_citation_for_question(citation: Citation, terms: list[str], asks_styling: bool) -> float:
    path = citation.file_path.lower()
    content = citation.snippet.lower()

    score = score_terms(path, content, terms)

    if asks_styling:
        if path.endswith(STYLESHEET_EXTENSIONS):
            score += STYLESHEET_BOOST
        if path.endswith(MARKUP_EXTENSIONS):
            score += MARKUP_BOOST
        if any(marker in content for marker in STYLE_CONTENT_MARKERS):
            score += STYLE_CONTENT_BOOST

    return score


def _select_relevant_citations(
    snippets: list[Citation],
    question: str | None,
    limit: int = MAX_FALLBACK_SUGGESTIONS,
) -> list[Citation]:
    """Pick up to `limit` snippets; positive scorers only when any score positive."""
    normalized_question = (question or "").strip()
    if not normalized_question:
        return snippets[:limit]

    terms = extract_query_terms(normalized_question)
    asks_styling = bool(_STYLING_INTENT.search(normalized_question))

    scored = [
        (_score_citation_for_question(snippet, terms, asks_styling), position, snippet)
        for position, snippet in enumerate(snippets)
    ]
    scored.sort(key=lambda x: (-x[0], x[1]))

    positive = [item for item in scored if item[0] > 0]
    selected = [snippet for _, _, snippet in (positive or scored)[:limit]]
    return selected or snippets[:limit]


def build_fallback_refactor_suggestions(
    snippets: list[Citation],
    question: str | None = None,
) -> list[RefactorSuggestion]:
    """Pair the most relevant evidence snippets with fixed refactor templates.

    Each suggestion cites exactly one snippet; never more suggestions than
    available snippets (at most three).

    Args:
        snippets: Evidence snippets
        question: Optional question used to pick relevant snippets

    Returns:
        Deterministic, cited suggestions
    """
    if not snippets:
        return []

    selected = _select_relevant_citations(snippets, question)

    return [
        RefactorSuggestion(**template, citations=[citation])
        for template, citation in zip(FALLBACK_TEMPLATES, selected)
    ]
