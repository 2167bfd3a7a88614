"""SearchResult entity - represents a retrieved chunk with relevance score."""

from pydantic import BaseModel, Field

from ragcourse.entities.chunk import Chunk


class SearchResult(BaseModel):
    """A retrieved chunk with relevance score.

    Result lists returned by vector stores are ordered by descending score.
    """

    chunk: Chunk
    score: float = Field(..., ge=0.0, le=1.0, description="Relevance score (0-1)")
