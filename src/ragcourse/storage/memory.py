"""In-memory vector store.

Everything lives in a Python list for the lifetime of the process, so a
restart always starts from an empty index. Useful for:
- Testing without external dependencies
- Development and the default course setup
"""

from typing import Any, Optional

import structlog

from ragcourse.entities import Chunk, SearchResult
from ragcourse.storage.base import DEFAULT_TOP_K, StorageError, VectorStore

logger = structlog.get_logger(__name__)


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """Calculate cosine similarity between two vectors."""
    if len(vec1) != len(vec2):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    magnitude1 = sum(a * a for a in vec1) ** 0.5
    magnitude2 = sum(b * b for b in vec2) ** 0.5

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return dot_product / (magnitude1 * magnitude2)


def _matches(metadata: dict[str, Any], filters: Optional[dict[str, Any]]) -> bool:
    if not filters:
        return True
    return all(metadata.get(key) == value for key, value in filters.items())


class InMemoryVectorStore(VectorStore):
    """In-memory vector store implementation."""

    is_persistent = False

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.entries: list[tuple[list[float], Chunk]] = []

    async def initialize(self) -> None:
        pass

    async def add_chunks(self, chunks: list[Chunk]) -> int:
        if not chunks:
            return 0

        vectors = await self._embed_in_batches(chunks)
        if len(vectors) != len(chunks):
            raise StorageError(
                message=f"Embeddings and chunks length mismatch: {len(vectors)} vs {len(chunks)}",
                storage_type="in_memory",
            )

        self.entries.extend(zip(vectors, chunks))
        logger.info("chunks_added", count=len(chunks), total=len(self.entries))
        return len(chunks)

    async def similarity_search(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: float = 0.0,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        if not self.entries:
            return []

        query_vector = await self.embedding_provider.embed_text(query)

        results = []
        for vector, chunk in self.entries:
            if not _matches(chunk.metadata, filters):
                continue
            # Negative cosine means unrelated; clamp into the score range
            score = max(0.0, min(1.0, cosine_similarity(query_vector, vector)))
            if score >= similarity_threshold:
                results.append(SearchResult(chunk=chunk, score=score))

        results.sort(key=lambda r: r.score, reverse=True)
        return results[:top_k]

    async def delete_by_source(self, source_id: str) -> int:
        before = len(self.entries)
        self.entries = [(v, c) for v, c in self.entries if c.metadata.get("source") != source_id]
        return before - len(self.entries)

    async def count(self) -> int:
        return len(self.entries)

    async def close(self) -> None:
        self.entries.clear()
