"""Retrieval module for the Code Evidence QA service.

This module implements the retrieval pipeline:

- Chunk repository protocol with an in-memory FAISS + BM25 implementation
- Query term extraction and substring OR-filter construction
- Layered hybrid search (vector -> full-text -> OR filter -> recency)
- Heuristic relevance ranking with path, intent and term signals
- Chunk loading from JSON

Author: Hay Hoffman
"""

from src.retrieval.chunk_loader import ChunkLoader, load_repository
from src.retrieval.hybrid_search import HybridSearcher, hybrid_search
from src.retrieval.ranker import rank_retrieved_chunks
from src.retrieval.repository import ChunkRepository, InMemoryChunkRepository
from src.retrieval.terms import build_fallback_or_filter, extract_query_terms

__all__ = [
    "ChunkRepository",
    "InMemoryChunkRepository",
    "ChunkLoader",
    "load_repository",
    "HybridSearcher",
    "hybrid_search",
    "rank_retrieved_chunks",
    "extract_query_terms",
    "build_fallback_or_filter",
]
