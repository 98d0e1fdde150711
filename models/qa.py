"""Response models for the ask and refactor flows."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models.chunk import Citation
from models.refactor import RefactorSuggestion

__all__ = ["AskResponse", "RefactorResponse"]


class AskResponse(BaseModel):
    """Answer with its citations and the evidence it was generated from."""

    model_config = ConfigDict(populate_by_name=True)

    answer: str
    citations: list[Citation] = Field(default_factory=list)
    retrieved_snippets: list[Citation] = Field(default_factory=list, alias="retrievedSnippets")
    note_when_insufficient_evidence: Optional[str] = None


class RefactorResponse(BaseModel):
    """Grounded refactor suggestions for a question."""

    suggestions: list[RefactorSuggestion] = Field(default_factory=list)
    note_when_insufficient_evidence: Optional[str] = None
