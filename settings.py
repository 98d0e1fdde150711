"""Configuration settings for the Code Evidence QA service.

This module provides a unified configuration system with two categories:

1. SYSTEM CONSTANTS: Fixed values that define system behavior (not user-configurable)
   - File extension tables, regex patterns, stopword sets
   - Ranking weights for the relevance ranker

2. USER SETTINGS: Configurable via environment variables (.env file)
   - API keys, model names
   - Tunable parameters (top-k, citation limits, similarity threshold)

Author: Hay Hoffman
Version: 3.0
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# SYSTEM CONSTANTS - Not user-configurable
# ============================================================================

# -----------------------------------------------------------------------------
# Project Paths
# -----------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data"

# -----------------------------------------------------------------------------
# File Classification
# -----------------------------------------------------------------------------

CODE_EXTENSIONS: frozenset[str] = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
    ".py", ".go", ".rs", ".java", ".kt", ".scala", ".swift",
    ".rb", ".php", ".cs", ".cpp", ".cc", ".c", ".h", ".hpp",
    ".sh", ".bash", ".lua", ".dart", ".ex", ".exs", ".vue", ".svelte",
})
DOC_EXTENSIONS: frozenset[str] = frozenset({
    ".md", ".mdx", ".markdown", ".txt", ".rst", ".adoc",
})
DOC_NAME_MARKERS: tuple[str, ...] = ("readme", "changelog")
DOC_DIR_SEGMENTS: tuple[str, ...] = ("/docs/",)
SOURCE_DIR_SEGMENTS: tuple[str, ...] = ("/src/", "/app/", "/lib/")
STYLESHEET_EXTENSIONS: tuple[str, ...] = (".css", ".scss", ".sass", ".less")
MARKUP_EXTENSIONS: tuple[str, ...] = (".html", ".tsx", ".jsx")
STYLE_CONTENT_MARKERS: tuple[str, ...] = (":root", "background", "color:")

# -----------------------------------------------------------------------------
# Query Intent Patterns (matched case-insensitively against the raw question)
# -----------------------------------------------------------------------------

IMPLEMENTATION_INTENT_PATTERN: str = (
    r"\b(where|handled|handle|handles|implemented|implementation|function|"
    r"functions|class|classes|api|auth|authentication|retry|retries|logic|flow)\b"
)
DATA_FLOW_INTENT_PATTERN: str = (
    r"\b(data|fetch|fetched|fetching|source|coming|load|loaded|loading|api|flow|"
    r"pipeline)\b|\bfrom\s+where\b|\bwhere\s+from\b"
)
STYLING_INTENT_PATTERN: str = (
    r"\b(style|styling|theme|dark mode|dark|css|ui|color|colors|class)\b"
)

# Path/content patterns used by data-flow scoring
ROUTE_HANDLER_PATTERN: str = r"(^|/)(route|routes)\.(ts|tsx|js|jsx|mjs|py)$"
UI_PAGE_PATTERN: str = r"(^|/)page\.(ts|tsx|js|jsx)$"
NETWORK_CALL_PATTERN: str = (
    r"\bfetch\(|\baxios\.|\bprisma\.|\bsupabase\.|\bdrizzle\.|\bmongoose\.|"
    r"\bknex\(|\bsequelize\.|\brequests\.(get|post|put|delete)\(|\bhttpx\."
)
DATA_FLOW_HINT_TERMS: tuple[str, ...] = (
    "api", "route", "fetch", "prisma", "supabase", "store", "query", "database",
)

# -----------------------------------------------------------------------------
# Stopwords
# -----------------------------------------------------------------------------

# Term extraction for retrieval and ranking
QUERY_STOPWORDS: frozenset[str] = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "do", "does", "did", "has", "have", "had", "can", "could", "should", "would",
    "will", "how", "what", "where", "when", "why", "which", "who", "whom", "whose",
    "of", "to", "for", "from", "in", "on", "at", "by", "with", "into", "about",
    "and", "or", "as", "it", "its", "this", "that", "these", "those", "there",
    "implemented", "handled", "coming", "done", "work", "works", "used",
})

# Refactor suggestion grounding
SUGGESTION_STOPWORDS: frozenset[str] = frozenset({
    "the", "is", "are", "was", "were", "a", "an", "and", "or", "to", "of",
    "for", "in", "on", "with", "by", "this", "that", "use", "using", "more",
    "improve", "improved", "current", "implementation", "code", "method",
})

# Full-text search (in-memory store, mirrors an english text-search config)
FULL_TEXT_STOPWORDS: frozenset[str] = QUERY_STOPWORDS | frozenset({
    "not", "but", "if", "then", "than", "all", "any", "some",
})

# -----------------------------------------------------------------------------
# Ranking Weights
# -----------------------------------------------------------------------------

SIMILARITY_WEIGHT: float = 2.0
CODE_FILE_BOOST: float = 1.6
DOC_FILE_PENALTY: float = -1.4
SOURCE_DIR_BOOST: float = 0.9
IMPLEMENTATION_CODE_BOOST: float = 0.8
IMPLEMENTATION_DOC_PENALTY: float = -0.8
API_PATH_BOOST: float = 1.3
ROUTE_HANDLER_BOOST: float = 1.2
NETWORK_CALL_BOOST: float = 0.8
UI_PAGE_PENALTY: float = -0.6
TERM_PATH_WEIGHT: float = 0.45
TERM_CONTENT_WEIGHT: float = 0.15
HINT_PATH_WEIGHT: float = 0.22
HINT_CONTENT_WEIGHT: float = 0.08

# Fallback refactor selection: styling questions
STYLESHEET_BOOST: float = 5.0
MARKUP_BOOST: float = 2.0
STYLE_CONTENT_BOOST: float = 2.0

# -----------------------------------------------------------------------------
# Answer Text
# -----------------------------------------------------------------------------

INSUFFICIENT_EVIDENCE_ANSWER: str = "Insufficient evidence in the indexed codebase."


# ============================================================================
# USER SETTINGS - Configurable via environment variables
# ============================================================================

# -----------------------------------------------------------------------------
# API Keys (required only when the LLM is used)
# -----------------------------------------------------------------------------

GOOGLE_API_KEY: str | None = os.getenv("GOOGLE_API_KEY")

# -----------------------------------------------------------------------------
# Model Configuration
# -----------------------------------------------------------------------------

ANSWER_MODEL: str = os.getenv("ANSWER_MODEL", "gemini-2.0-flash")

# Embedding model (query vectors must match the ingestion model)
EMBEDDING_MODEL: str = os.getenv(
    "EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2"
)
EMBEDDING_DIMENSION: int = int(os.getenv("EMBEDDING_DIMENSION", "768"))

# -----------------------------------------------------------------------------
# LLM Parameters
# -----------------------------------------------------------------------------

LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.1"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "1024"))
LLM_TIMEOUT: int = int(os.getenv("LLM_TIMEOUT", "60"))
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "3"))

# -----------------------------------------------------------------------------
# Retrieval Configuration
# -----------------------------------------------------------------------------

DEFAULT_TOP_K: int = int(os.getenv("DEFAULT_TOP_K", "10"))
REFACTOR_TOP_K: int = int(os.getenv("REFACTOR_TOP_K", "8"))
VECTOR_MATCH_THRESHOLD: float = float(os.getenv("VECTOR_MATCH_THRESHOLD", "0.1"))

# -----------------------------------------------------------------------------
# Citation Configuration
# -----------------------------------------------------------------------------

DEFAULT_CITATION_LIMIT: int = int(os.getenv("DEFAULT_CITATION_LIMIT", "5"))
DEFAULT_SNIPPET_LIMIT: int = int(os.getenv("DEFAULT_SNIPPET_LIMIT", "8"))
MAX_REFACTOR_SUGGESTIONS: int = int(os.getenv("MAX_REFACTOR_SUGGESTIONS", "5"))
MAX_FALLBACK_SUGGESTIONS: int = 3

# -----------------------------------------------------------------------------
# QA History
# -----------------------------------------------------------------------------

HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "10"))

# -----------------------------------------------------------------------------
# Chunk Store
# -----------------------------------------------------------------------------

CHUNKS_FILE: Path = Path(os.getenv("CHUNKS_FILE", str(DATA_DIR / "chunks.json")))


# ============================================================================
# VALIDATION
# ============================================================================

if EMBEDDING_DIMENSION <= 0:
    raise ValueError(f"Invalid EMBEDDING_DIMENSION: {EMBEDDING_DIMENSION}. Must be positive")

if not 0.0 <= VECTOR_MATCH_THRESHOLD < 1.0:
    raise ValueError(
        f"Invalid VECTOR_MATCH_THRESHOLD: {VECTOR_MATCH_THRESHOLD}. Must be in [0, 1)"
    )

if HISTORY_LIMIT <= 0:
    raise ValueError(f"Invalid HISTORY_LIMIT: {HISTORY_LIMIT}. Must be positive")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    # === SYSTEM CONSTANTS ===
    # Paths
    "PROJECT_ROOT",
    "DATA_DIR",
    # File classification
    "CODE_EXTENSIONS",
    "DOC_EXTENSIONS",
    "DOC_NAME_MARKERS",
    "DOC_DIR_SEGMENTS",
    "SOURCE_DIR_SEGMENTS",
    "STYLESHEET_EXTENSIONS",
    "MARKUP_EXTENSIONS",
    "STYLE_CONTENT_MARKERS",
    # Intent patterns
    "IMPLEMENTATION_INTENT_PATTERN",
    "DATA_FLOW_INTENT_PATTERN",
    "STYLING_INTENT_PATTERN",
    "ROUTE_HANDLER_PATTERN",
    "UI_PAGE_PATTERN",
    "NETWORK_CALL_PATTERN",
    "DATA_FLOW_HINT_TERMS",
    # Stopwords
    "QUERY_STOPWORDS",
    "SUGGESTION_STOPWORDS",
    "FULL_TEXT_STOPWORDS",
    # Ranking weights
    "SIMILARITY_WEIGHT",
    "CODE_FILE_BOOST",
    "DOC_FILE_PENALTY",
    "SOURCE_DIR_BOOST",
    "IMPLEMENTATION_CODE_BOOST",
    "IMPLEMENTATION_DOC_PENALTY",
    "API_PATH_BOOST",
    "ROUTE_HANDLER_BOOST",
    "NETWORK_CALL_BOOST",
    "UI_PAGE_PENALTY",
    "TERM_PATH_WEIGHT",
    "TERM_CONTENT_WEIGHT",
    "HINT_PATH_WEIGHT",
    "HINT_CONTENT_WEIGHT",
    "STYLESHEET_BOOST",
    "MARKUP_BOOST",
    "STYLE_CONTENT_BOOST",
    # Answer text
    "INSUFFICIENT_EVIDENCE_ANSWER",
    # === USER SETTINGS ===
    "GOOGLE_API_KEY",
    "ANSWER_MODEL",
    "EMBEDDING_MODEL",
    "EMBEDDING_DIMENSION",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "LLM_TIMEOUT",
    "LLM_MAX_RETRIES",
    "DEFAULT_TOP_K",
    "REFACTOR_TOP_K",
    "VECTOR_MATCH_THRESHOLD",
    "DEFAULT_CITATION_LIMIT",
    "DEFAULT_SNIPPET_LIMIT",
    "MAX_REFACTOR_SUGGESTIONS",
    "MAX_FALLBACK_SUGGESTIONS",
    "HISTORY_LIMIT",
    "CHUNKS_FILE",
]
