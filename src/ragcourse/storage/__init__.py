"""Storage layer: vector store backends."""

from ragcourse.config.schema import VectorBackend, VectorStoreConfig
from ragcourse.providers.base import EmbeddingProvider
from ragcourse.storage.base import StorageError, VectorStore


def create_vector_store(
    config: VectorStoreConfig,
    embedding_provider: EmbeddingProvider,
    batch_size: int = 32,
) -> VectorStore:
    """Factory function to create the vector store for the configured backend.

    Exactly one implementation is returned per call:
    - in_memory: InMemoryVectorStore
    - networked: ChromaVectorStore

    Args:
        config: Vector store configuration; ``config.backend`` selects the store
        embedding_provider: Provider the store embeds with
        batch_size: Chunks embedded per provider call

    Raises:
        ValueError: If the backend is unknown
        StorageError: If the backend's dependencies are missing
    """
    backend = VectorBackend(config.backend)

    if backend == VectorBackend.IN_MEMORY:
        from ragcourse.storage.memory import InMemoryVectorStore

        return InMemoryVectorStore(config, embedding_provider, batch_size=batch_size)

    elif backend == VectorBackend.NETWORKED:
        try:
            from ragcourse.storage.chroma import ChromaVectorStore
        except ImportError as e:
            raise StorageError(
                message="Networked vector store requires the chromadb package",
                storage_type="chroma",
                original_error=e,
            ) from e
        return ChromaVectorStore(config, embedding_provider, batch_size=batch_size)

    raise ValueError(f"Unknown vector backend: '{backend}'. Supported: in_memory, networked")


__all__ = [
    "StorageError",
    "VectorStore",
    "create_vector_store",
]
