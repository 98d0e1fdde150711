"""Query embedding.

Author: Hay Hoffman
"""

from src.embeddings.query_embedder import QueryEmbedder

__all__ = ["QueryEmbedder"]
