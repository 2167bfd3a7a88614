"""Chroma vector store implementation (the networked backend).

Connects to a Chroma server over HTTP. When no host is configured but a
persist directory is, an embedded persistent client is used instead, which
keeps the same on-disk behaviour without running a server.

Why this exists:
- Data survives restarts, so the knowledge base is loaded once
- Native support for metadata filtering

Trade-offs:
- Requires a running server (or local disk) and network access
- Metadata values are limited to str, int, float and bool
"""

import re
from typing import Any, Optional
from uuid import UUID

import structlog

from ragcourse.entities import Chunk, SearchResult
from ragcourse.storage.base import DEFAULT_TOP_K, StorageError, VectorStore

logger = structlog.get_logger(__name__)

# Keys the store writes itself; everything else is chunk metadata
_RESERVED_KEYS = ("chunk_id", "document_id", "chunk_index")


def sanitize_collection_name(name: str) -> str:
    """Sanitize collection name for Chroma compatibility.

    Chroma collection names must:
    - Be 3-63 characters long
    - Start and end with alphanumeric
    - Contain only alphanumeric, underscores, or hyphens
    """
    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "_", name)

    if sanitized and not sanitized[0].isalnum():
        sanitized = "c" + sanitized
    if sanitized and not sanitized[-1].isalnum():
        sanitized = sanitized + "0"

    if len(sanitized) < 3:
        sanitized = sanitized + "_default"
    if len(sanitized) > 63:
        sanitized = sanitized[:63]

    return sanitized


def _to_chroma_metadata(chunk: Chunk) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    for key, value in chunk.metadata.items():
        if value is None or key in _RESERVED_KEYS:
            continue
        metadata[key] = value if isinstance(value, (str, int, float, bool)) else str(value)
    metadata["chunk_id"] = str(chunk.id)
    metadata["document_id"] = str(chunk.document_id)
    metadata["chunk_index"] = chunk.chunk_index
    return metadata


def _where_clause(filters: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if not filters:
        return None
    if len(filters) == 1:
        return dict(filters)
    return {"$and": [{key: value} for key, value in filters.items()]}


class ChromaVectorStore(VectorStore):
    """Chroma vector store implementation.

    Example:
        config = VectorStoreConfig(
            backend="networked",
            host="localhost",
            port=8000,
            collection_name="ragcourse",
        )
        store = ChromaVectorStore(config, embedding_provider)
        await store.initialize()
    """

    is_persistent = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.collection_name = sanitize_collection_name(self.config.collection_name)
        self._client = None
        self._collection = None

    @property
    def collection(self):
        if self._collection is None:
            raise StorageError(
                message="Chroma vector store is not initialized",
                storage_type="chroma",
            )
        return self._collection

    async def initialize(self) -> None:
        """Connect to Chroma and get or create the collection.

        Raises:
            StorageError: If the client cannot connect or the collection fails
        """
        try:
            import chromadb
        except ImportError as e:
            raise StorageError(
                message="chromadb not installed. Install with: pip install chromadb",
                storage_type="chroma",
                original_error=e,
            ) from e

        try:
            if self.config.host:
                logger.info(
                    "connecting_chroma_http_client",
                    host=self.config.host,
                    port=self.config.port,
                )
                self._client = chromadb.HttpClient(
                    host=self.config.host,
                    port=self.config.port,
                    ssl=self.config.ssl,
                    **self.config.extra_params,
                )
            elif self.config.persist_directory:
                logger.info(
                    "creating_chroma_persistent_client",
                    persist_directory=str(self.config.persist_directory),
                )
                self._client = chromadb.PersistentClient(path=str(self.config.persist_directory))
            else:
                raise StorageError(
                    message="Networked vector store needs vector_store.host or vector_store.persist_directory",
                    storage_type="chroma",
                )

            self._collection = self._client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                message=f"Failed to initialize Chroma: {str(e)}",
                storage_type="chroma",
                original_error=e,
            ) from e

        logger.info("chroma_vector_store_initialized", collection_name=self.collection_name)

    async def add_chunks(self, chunks: list[Chunk]) -> int:
        if not chunks:
            return 0

        vectors = await self._embed_in_batches(chunks)
        if len(vectors) != len(chunks):
            raise StorageError(
                message=f"Embeddings and chunks length mismatch: {len(vectors)} vs {len(chunks)}",
                storage_type="chroma",
            )

        try:
            self.collection.add(
                ids=[str(chunk.id) for chunk in chunks],
                embeddings=vectors,
                metadatas=[_to_chroma_metadata(chunk) for chunk in chunks],
                documents=[chunk.content for chunk in chunks],
            )
        except Exception as e:
            raise StorageError(
                message=f"Failed to add chunks: {str(e)}",
                storage_type="chroma",
                original_error=e,
            ) from e

        logger.info("chunks_added", count=len(chunks), collection_name=self.collection_name)
        return len(chunks)

    async def similarity_search(
        self,
        query: str,
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: float = 0.0,
        filters: Optional[dict[str, Any]] = None,
    ) -> list[SearchResult]:
        if await self.count() == 0:
            return []

        query_vector = await self.embedding_provider.embed_text(query)

        try:
            query_results = self.collection.query(
                query_embeddings=[query_vector],
                n_results=top_k,
                where=_where_clause(filters),
            )
        except Exception as e:
            raise StorageError(
                message=f"Failed to search: {str(e)}",
                storage_type="chroma",
                original_error=e,
            ) from e

        results = []
        if query_results["ids"] and query_results["ids"][0]:
            for i, chunk_id in enumerate(query_results["ids"][0]):
                metadata = dict(query_results["metadatas"][0][i])
                distance = query_results["distances"][0][i]
                score = max(0.0, min(1.0, 1.0 - distance))
                if score < similarity_threshold:
                    continue

                chunk = Chunk(
                    id=UUID(chunk_id),
                    document_id=UUID(metadata.pop("document_id")),
                    chunk_index=metadata.pop("chunk_index"),
                    content=query_results["documents"][0][i],
                    metadata={k: v for k, v in metadata.items() if k not in _RESERVED_KEYS},
                )
                results.append(SearchResult(chunk=chunk, score=score))

        results.sort(key=lambda r: r.score, reverse=True)
        logger.debug("search_completed", results_count=len(results))
        return results

    async def delete_by_source(self, source_id: str) -> int:
        try:
            existing = self.collection.get(where={"source": source_id})
            if existing["ids"]:
                self.collection.delete(ids=existing["ids"])
        except Exception as e:
            raise StorageError(
                message=f"Failed to delete source '{source_id}': {str(e)}",
                storage_type="chroma",
                original_error=e,
            ) from e

        logger.info("source_deleted", source=source_id, count=len(existing["ids"]))
        return len(existing["ids"])

    async def count(self) -> int:
        try:
            return self.collection.count()
        except Exception as e:
            raise StorageError(
                message=f"Failed to count chunks: {str(e)}",
                storage_type="chroma",
                original_error=e,
            ) from e

    async def close(self) -> None:
        """Drop client references. Chroma persists on write."""
        logger.debug("closing_chroma_vector_store")
        self._collection = None
        self._client = None
