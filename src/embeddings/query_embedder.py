"""Query embedding with sentence-transformers.

Questions must be embedded with the same model used at ingestion time so the
vectors are comparable with stored chunk embeddings.

Author: Hay Hoffman
"""

import logging
from typing import Any

import numpy as np

from settings import EMBEDDING_DIMENSION, EMBEDDING_MODEL

logger = logging.getLogger(__name__)

__all__ = ["QueryEmbedder"]


class QueryEmbedder:
    """Embed questions with lazily loaded, process-wide SentenceTransformers.

    Loaded models are cached per model name.
    """

    _embedding_models: dict[str, Any] = {}

    def __init__(self, model_name: str = EMBEDDING_MODEL, dimension: int = EMBEDDING_DIMENSION):
        self.model_name = model_name
        self.dimension = dimension

    @classmethod
    def _get_embedding_model(cls, model_name: str = EMBEDDING_MODEL):
        """Get cached embedding model (lazy-loaded, one instance per model name).

        Returns:
            SentenceTransformer model instance
        """
        if model_name not in cls._embedding_models:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {model_name}")
            cls._embedding_models[model_name] = SentenceTransformer(model_name)
            logger.info("Embedding model loaded successfully")

        return cls._embedding_models[model_name]

    def embed(self, question: str) -> list[float]:
        """Embed one question.

        Raises:
            ValueError: If the model produces a vector of the wrong size
        """
        model = self._get_embedding_model(self.model_name)
        embedding = np.asarray(model.encode(question), dtype=np.float32).reshape(-1)

        if embedding.shape[0] != self.dimension:
            raise ValueError(
                f"Embedding dimension mismatch: expected {self.dimension}, got {embedding.shape[0]}"
            )

        return embedding.tolist()

    def __call__(self, question: str) -> list[float]:
        return self.embed(question)
