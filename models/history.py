"""Question/answer history models.

One entry is stored per answered question so earlier answers for a source can
be listed again.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models.chunk import Citation

__all__ = ["QAHistoryEntry"]


class QAHistoryEntry(BaseModel):
    """A single answered question for a source."""

    model_config = ConfigDict(populate_by_name=True)

    source_id: str = Field(..., description="Source the question was asked against")
    question: str = Field(..., description="Normalized question text")
    answer: str = Field(..., description="Answer returned to the caller")
    citations: list[Citation] = Field(
        default_factory=list,
        alias="citationsJson",
        description="Citations returned with the answer",
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Time the answer was recorded",
    )
