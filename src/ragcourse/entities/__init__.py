"""Entities - Domain models for the RAG pipeline.

This module contains pure domain entities without business logic:
- Document: A text-bearing record read from a source (web page, PDF page)
- Chunk: A token-bounded segment of a document, the unit stored in the index
- SearchResult: A retrieved chunk with relevance score
- Message: A single conversational turn
- ChatResult: A chat completion with model and token usage
"""

from ragcourse.entities.chat import ChatResult, Message, MessageRole, TokenUsage
from ragcourse.entities.chunk import Chunk
from ragcourse.entities.document import Document, DocumentType
from ragcourse.entities.search_result import SearchResult

__all__ = [
    "ChatResult",
    "Chunk",
    "Document",
    "DocumentType",
    "Message",
    "MessageRole",
    "SearchResult",
    "TokenUsage",
]
