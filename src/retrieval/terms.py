"""Query term extraction and the substring OR-filter builder.

Questions are normalized into lowercase search terms with punctuation and
stopwords removed. The same terms drive the keyword-OR fallback strategy and
the term boosts of the relevance ranker.

Author: Hay Hoffman
"""

import logging
import re

from settings import QUERY_STOPWORDS

logger = logging.getLogger(__name__)

__all__ = [
    "normalize_text_query",
    "tokenize",
    "extract_query_terms",
    "escape_like_term",
    "build_fallback_or_filter",
    "FALLBACK_FILTER_FIELDS",
]

# Pre-compiled regex patterns
_PUNCTUATION_PATTERN = re.compile(r"[^\w\s./:-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")
_LIKE_UNSAFE_PATTERN = re.compile(r"[%,()'\"\\*]")

# Fields matched by the OR filter, in clause order
FALLBACK_FILTER_FIELDS: tuple[str, ...] = ("content", "file_path")

MIN_TERM_LENGTH = 3


def normalize_text_query(query: str) -> str:
    """Replace punctuation outside ``[\\w\\s./:-]`` with spaces and trim.

    Args:
        query: Raw question text

    Returns:
        Normalized query (case preserved)
    """
    return _PUNCTUATION_PATTERN.sub(" ", query).strip()


def tokenize(text: str, stopwords: frozenset[str] = QUERY_STOPWORDS) -> list[str]:
    """Lowercase, strip punctuation and split, dropping short terms and stopwords.

    Duplicates are kept; use extract_query_terms for an ordered unique list.
    """
    normalized = _PUNCTUATION_PATTERN.sub(" ", text.lower())
    return [
        term
        for term in _WHITESPACE_PATTERN.split(normalized)
        if len(term) >= MIN_TERM_LENGTH and term not in stopwords
    ]


def extract_query_terms(
    question: str,
    stopwords: frozenset[str] = QUERY_STOPWORDS,
) -> list[str]:
    """Extract ordered, unique search terms from a question.

    Examples:
    - "Where is auth handled?" -> ["auth"]
    - "how university data is coming" -> ["university", "data"]

    Args:
        question: Raw question text
        stopwords: Terms to drop

    Returns:
        Terms in first-occurrence order (may be empty)
    """
    return list(dict.fromkeys(tokenize(question, stopwords)))


def escape_like_term(term: str) -> str:
    """Remove characters that would break an ``ilike`` filter expression."""
    return _WHITESPACE_PATTERN.sub(" ", _LIKE_UNSAFE_PATTERN.sub(" ", term)).strip()


def build_fallback_or_filter(question: str) -> str:
    """Build the comma-separated OR filter for substring fallback search.

    Every term produces one ``<field>.ilike.%term%`` clause per field in
    FALLBACK_FILTER_FIELDS. When every term is filtered out the whole
    normalized question is used as a single term; an empty string means an
    unconstrained filter.

    Example:
        >>> build_fallback_or_filter("auth retry")
        'content.ilike.%auth%,file_path.ilike.%auth%,content.ilike.%retry%,file_path.ilike.%retry%'

    Args:
        question: Raw question text

    Returns:
        Filter expression (never contains a single quote)
    """
    terms = [escaped for escaped in map(escape_like_term, extract_query_terms(question)) if escaped]
    terms = list(dict.fromkeys(terms))

    if not terms:
        whole_query = escape_like_term(normalize_text_query(question).lower())
        terms = [whole_query] if whole_query else []
        logger.debug(f"No search terms survived filtering, using whole query: {terms}")

    return ",".join(
        f"{field}.ilike.%{term}%"
        for term in terms
        for field in FALLBACK_FILTER_FIELDS
    )
