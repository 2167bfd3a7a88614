"""Abstract base class for vector storage backends.

Why this exists:
- Allows swapping between the in-memory index and a networked database
- Keeps embedding calls inside the store, so callers work with text only
- Enables testing with in-memory implementations

How to extend:
1. Subclass VectorStore
2. Implement all abstract methods
3. Register in ragcourse.storage.create_vector_store
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ragcourse.config.schema import VectorStoreConfig
from ragcourse.entities import Chunk, SearchResult
from ragcourse.providers.base import EmbeddingProvider

DEFAULT_TOP_K = 4


class VectorStore(ABC):
    """Abstract interface for vector storage backends.

    Implementations must handle:
    - Embedding chunk text (through the injected provider) and storing it
    - Similarity search by query text
    - Deleting by source identifier
    """

    #: Whether data survives a process restart. The knowledge base loader
    #: only probes persistent stores for existing data.
    is_persistent: bool = False

    def __init__(self, config: VectorStoreConfig, embedding_provider: EmbeddingProvider, batch_size: int = 32) -> None:
        """Initialize storage with configuration.

        Args:
            config: Vector store configuration
            embedding_provider: Provider used for chunk and query embeddings
            batch_size: Number of chunks embedded per provider call
        """
        self.config = config
        self.embedding_provider = embedding_provider
        self.batch_size = batch_size

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the vector store (connect, create collections, etc.)."""

    @abstractmethod
    async def add_chunks(self, chunks: list[Chunk]) -> int:
        """Embed and store chunks.

        Args:
            chunks: Chunks to store

        Returns:
            Number of chunks stored

        Raises:
            StorageError: If storage fails
            ProviderError: If embedding fails
        """

    @abstractmethod
    async def similarity_search(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: float = 0.0,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        """Search for chunks similar to the query text.

        Args:
            query: Natural-language query
            top_k: Number of results to return
            similarity_threshold: Minimum score for a result to be kept
            filters: Optional exact-match metadata filters

        Returns:
            Results ordered by descending score
        """

    @abstractmethod
    async def delete_by_source(self, source_id: str) -> int:
        """Delete all chunks stamped with a source identifier.

        Returns:
            Number of chunks deleted
        """

    @abstractmethod
    async def count(self) -> int:
        """Return total number of chunks stored."""

    @abstractmethod
    async def close(self) -> None:
        """Close connections and cleanup resources."""

    async def _embed_in_batches(self, chunks: list[Chunk]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for i in range(0, len(chunks), self.batch_size):
            batch = chunks[i : i + self.batch_size]
            vectors.extend(await self.embedding_provider.embed_batch([c.content for c in batch]))
        return vectors


class StorageError(Exception):
    """Base exception for storage errors."""

    def __init__(self, message: str, storage_type: str, original_error: Exception | None = None):
        self.message = message
        self.storage_type = storage_type
        self.original_error = original_error
        super().__init__(self.message)
