"""Chunk entity - represents a segment of a document."""

from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


class Chunk(BaseModel):
    """A token-bounded segment of a document, ready for embedding.

    Chunks carry a copy of their parent document's metadata, so tags such as
    ``source`` and ``type`` stamped at ingestion survive into search results.
    """

    id: UUID = Field(default_factory=uuid4)
    document_id: UUID = Field(..., description="Parent document ID")
    content: str = Field(..., description="Text content of this chunk")
    chunk_index: int = Field(..., ge=0, description="Position in the document")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Chunk content cannot be empty")
        return v

    @property
    def source(self) -> str | None:
        """Source identifier stamped at ingestion, if any."""
        return self.metadata.get("source")
