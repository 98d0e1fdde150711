"""Pydantic models for chunk and citation data structures.

A chunk is a contiguous line-range slice of an ingested file and the atomic
unit of retrieval. Citations are presentation projections of chunks; they have
no lifecycle of their own and are rebuilt from chunks on every request.
"""

import re
from datetime import datetime
from pathlib import PurePosixPath
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["Chunk", "Citation", "RetrievalCandidate", "sanitize_chunk_text"]

# Null bytes and control characters other than \t, \n and \r
_DISALLOWED_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_chunk_text(text: str) -> str:
    """Strip null bytes and unsafe control characters, keeping newlines and tabs."""
    return _DISALLOWED_CONTROL_CHARS.sub("", text)


class Chunk(BaseModel):
    """A retrievable line-range slice of a source file.

    ``(file_path, start_line, end_line)`` is treated as the identity of a chunk
    for deduplication purposes within a source.
    """

    # Core identification
    id: str = Field(..., description="Unique chunk identifier")
    source_id: str = Field(..., description="Identifier of the ingested source (zip or repo)")

    # File location
    file_path: str = Field(..., description="Repo- or archive-relative path")
    start_line: int = Field(..., ge=1, description="First line of the chunk (1-indexed, inclusive)")
    end_line: int = Field(..., ge=1, description="Last line of the chunk (inclusive)")

    # Content
    content: str = Field(..., description="Sanitized chunk text")
    source_url: Optional[str] = Field(default=None, description="Viewable URL for the line range")

    # Retrieval metadata
    similarity: Optional[float] = Field(
        default=None,
        description="Cosine similarity, only present on vector-search results"
    )
    created_at: Optional[datetime] = Field(default=None, description="Ingestion timestamp")

    @field_validator('content')
    @classmethod
    def sanitize_content(cls, v: str) -> str:
        """Remove characters that storage backends reject."""
        return sanitize_chunk_text(v)

    @field_validator('end_line')
    @classmethod
    def validate_line_range(cls, v: int, info) -> int:
        """Ensure end_line >= start_line."""
        start_line = info.data.get('start_line', 1)
        if v < start_line:
            raise ValueError(f"end_line ({v}) must be >= start_line ({start_line})")
        return v

    @property
    def dedup_key(self) -> tuple[str, int, int]:
        """Key used to collapse duplicate chunks."""
        return (self.file_path, self.start_line, self.end_line)

    @property
    def filename(self) -> str:
        """Base filename of the chunk's file."""
        return PurePosixPath(self.file_path).name or self.file_path


class Citation(BaseModel):
    """A chunk reference presented as evidence for generated text.

    Serialized with camelCase aliases for presentation layers.
    """

    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(..., alias="filePath", description="Path of the cited file")
    start_line: int = Field(..., alias="startLine", description="First cited line")
    end_line: int = Field(..., alias="endLine", description="Last cited line")
    snippet: str = Field(..., description="Cited chunk text")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")

    @classmethod
    def from_chunk(cls, chunk: Chunk) -> "Citation":
        """Project a chunk into a citation."""
        return cls(
            file_path=chunk.file_path,
            start_line=chunk.start_line,
            end_line=chunk.end_line,
            snippet=chunk.content,
            source_url=chunk.source_url,
        )

    @property
    def dedup_key(self) -> tuple[str, int, int]:
        return (self.file_path, self.start_line, self.end_line)


class RetrievalCandidate(BaseModel):
    """A chunk with its ranking score (transient, used only while ranking)."""

    chunk: Chunk
    score: float = Field(..., description="Heuristic relevance score (higher is better)")
    position: int = Field(..., ge=0, description="Position in the original candidate list")
