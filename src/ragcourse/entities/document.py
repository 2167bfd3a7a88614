"""Document entity - represents a record read from a source."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


class DocumentType(str, Enum):
    """Supported document types."""

    HTML = "html"
    PDF = "pdf"
    TEXT = "text"


class Document(BaseModel):
    """A text-bearing record produced by a document reader.

    A web page yields one document; a PDF yields one document per page.
    Readers record the origin (URL or path) in ``metadata``.
    """

    id: UUID = Field(default_factory=uuid4)
    content: str = Field(..., description="Extracted text content")
    doc_type: DocumentType = Field(default=DocumentType.TEXT)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("content")
    @classmethod
    def content_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Document content cannot be empty")
        return v
