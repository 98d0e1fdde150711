"""Refactor suggestion models.

Suggestions are constructed per request, either from model output that passed
grounding checks or from deterministic templates, and discarded afterwards.

Author: Hay Hoffman
"""

from pydantic import BaseModel, ConfigDict, Field

from models.chunk import Citation

__all__ = ["RefactorSuggestion", "ParsedCitation", "ParsedSuggestion"]


class RefactorSuggestion(BaseModel):
    """A refactor suggestion backed by retrieved evidence.

    Attributes:
        title: Short title of the refactor
        rationale: Why the refactor helps, based on the evidence
        expected_impact: Expected effect of applying it
        citations: Evidence citations (at least one, all from current evidence)
    """

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1)
    rationale: str = Field(..., min_length=1)
    expected_impact: str = Field(..., min_length=1, alias="expectedImpact")
    citations: list[Citation] = Field(..., min_length=1)


class ParsedCitation(BaseModel):
    """Citation as claimed by the model, before resolution against evidence."""

    file_path: str
    start_line: int
    end_line: int


class ParsedSuggestion(BaseModel):
    """Suggestion that passed shape normalization but not yet grounding."""

    title: str
    rationale: str
    expected_impact: str
    citations: list[ParsedCitation] = Field(default_factory=list)
