"""Chunk loader for populating the in-memory repository from disk.

Chunks are stored as a JSON list of records. Each record carries the chunk
fields (id, source_id, file_path, start_line, end_line, content, optional
source_url and created_at) and an optional ``embedding`` list.

Author: Hay Hoffman
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from models.chunk import Chunk
from settings import CHUNKS_FILE, EMBEDDING_DIMENSION
from src.retrieval.repository import InMemoryChunkRepository

logger = logging.getLogger(__name__)

__all__ = ["ChunkLoader", "load_repository"]


class ChunkLoader:
    """Load chunks and their embeddings from a JSON file.

    Attributes:
        chunks_file: JSON file containing chunk records
        chunks: Parsed chunks in file order
        embeddings: Embedding per chunk (None when absent), aligned with chunks
        skipped: Number of records that failed validation
    """

    def __init__(self, chunks_file: Path):
        """Initialize chunk loader.

        Args:
            chunks_file: JSON file containing chunk records
        """
        self.chunks_file = Path(chunks_file)
        self.chunks: list[Chunk] = []
        self.embeddings: list[list[float] | None] = []
        self.skipped = 0

        self._load_chunks_from_file()

    def _load_chunks_from_file(self) -> None:
        """Parse every record, skipping those that fail validation.

        Raises:
            FileNotFoundError: If the chunks file does not exist
            ValueError: If the file is not a JSON list
        """
        if not self.chunks_file.exists():
            raise FileNotFoundError(f"Chunks file not found: {self.chunks_file}")

        try:
            with open(self.chunks_file, encoding='utf-8') as f:
                records = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to load chunks from {self.chunks_file}: {e}")
            raise

        if not isinstance(records, list):
            raise ValueError(f"Expected a JSON list of chunks in {self.chunks_file}")

        for record in records:
            if not isinstance(record, dict):
                self.skipped += 1
                continue

            embedding = record.pop("embedding", None)
            try:
                chunk = Chunk(**record)
            except ValidationError as e:
                logger.warning(f"Skipping invalid chunk record {record.get('id')}: {e}")
                self.skipped += 1
                continue

            self.chunks.append(chunk)
            self.embeddings.append(embedding)

        logger.info(
            f"Loaded {len(self.chunks)} chunks from {self.chunks_file.name} "
            f"({self.skipped} skipped)"
        )

    def load_into(self, repository: InMemoryChunkRepository) -> int:
        """Add the loaded chunks to a repository.

        Chunks whose embedding does not match the repository's dimension are
        skipped and counted in ``skipped``.

        Returns:
            Number of chunks added
        """
        chunks: list[Chunk] = []
        embeddings: list[list[float] | None] = []
        for chunk, embedding in zip(self.chunks, self.embeddings):
            if not repository.accepts_embedding(embedding):
                logger.warning(
                    f"Skipping chunk {chunk.id}: embedding is not "
                    f"{repository.embedding_dimension}-dimensional"
                )
                self.skipped += 1
                continue
            chunks.append(chunk)
            embeddings.append(embedding)

        return repository.add_chunks(chunks, embeddings)


def load_repository(
    chunks_file: Path = CHUNKS_FILE,
    embedding_dimension: int = EMBEDDING_DIMENSION,
) -> InMemoryChunkRepository:
    """Build an in-memory repository from a chunks file."""
    repository = InMemoryChunkRepository(embedding_dimension=embedding_dimension)
    ChunkLoader(chunks_file).load_into(repository)
    return repository
