"""Knowledge base ingestion: fetch, stamp, split and store configured sources.

Why this exists:
- Runs only when ingestion is switched on for the process
- Avoids reloading a persistent store that already holds the knowledge base
- Tags every chunk with its source so answers can cite it

How to use:
    from ragcourse.pipelines.ingestion import KnowledgeBaseLoader

    loader = KnowledgeBaseLoader(config.knowledge_base, startup, vector_store, splitter)
    report = await loader.load()
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx

from ragcourse.config.schema import KnowledgeBaseConfig, SourceConfig
from ragcourse.config.startup import StartupConfig
from ragcourse.core.chunking import TokenTextSplitter
from ragcourse.core.readers import create_reader
from ragcourse.entities import Document
from ragcourse.observability.logging import get_logger
from ragcourse.storage.base import VectorStore

logger = get_logger(__name__)


@dataclass
class LoadReport:
    """Outcome of a knowledge base load."""

    skipped: bool
    reason: str
    chunk_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_chunks(self) -> int:
        return sum(self.chunk_counts.values())


def stamp_metadata(documents: list[Document], source: SourceConfig) -> None:
    """Tag documents with their source identifier and content type."""
    for document in documents:
        document.metadata["source"] = source.source_id
        document.metadata["type"] = source.doc_type.value


class KnowledgeBaseLoader:
    """Loads the configured sources into a vector store."""

    def __init__(
        self,
        config: KnowledgeBaseConfig,
        startup: StartupConfig,
        vector_store: VectorStore,
        splitter: TokenTextSplitter,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the loader.

        Args:
            config: Sources and probe query
            startup: Activation flags resolved at process start
            vector_store: Store the chunks are added to
            splitter: Token splitter applied to every fetched document
            http_client: Optional shared client for fetching sources
        """
        self.config = config
        self.startup = startup
        self.vector_store = vector_store
        self.splitter = splitter
        self.http_client = http_client

    async def load(self) -> LoadReport:
        """Load every configured source, unless disabled or already loaded.

        Returns:
            LoadReport with per-source chunk counts, or the reason for skipping

        Raises:
            IngestionError: If any source fails to fetch, parse or store
        """
        if not self.startup.ingestion_enabled:
            logger.info("ingestion_disabled")
            return LoadReport(skipped=True, reason="ingestion_disabled")

        logger.info(
            "using_vector_store",
            store=type(self.vector_store).__name__,
            persistent=self.vector_store.is_persistent,
        )

        if self.vector_store.is_persistent and await self.data_exists():
            logger.info("knowledge_base_already_loaded", probe_query=self.config.probe_query)
            return LoadReport(skipped=True, reason="data_already_present")

        report = LoadReport(skipped=False, reason="loaded")
        for source in self.config.sources:
            report.chunk_counts[source.source_id] = await self.load_source(source)

        logger.info(
            "knowledge_base_loaded",
            source_count=len(report.chunk_counts),
            total_chunks=report.total_chunks,
        )
        return report

    async def data_exists(self) -> bool:
        """Probe the store once; any hit means the data is already there.

        A failing probe is treated as an empty store.
        """
        logger.info("probing_vector_store", probe_query=self.config.probe_query)
        try:
            results = await self.vector_store.similarity_search(self.config.probe_query)
        except Exception as e:
            logger.warning("probe_failed", probe_query=self.config.probe_query, error=str(e))
            return False

        logger.info("probe_completed", result_count=len(results))
        return bool(results)

    async def load_source(self, source: SourceConfig) -> int:
        """Fetch, stamp, split and store a single source.

        Returns:
            Number of chunks stored

        Raises:
            IngestionError: If anything fails for this source
        """
        try:
            reader = create_reader(source, self.http_client)
            documents = await reader.read()
            logger.info(
                "documents_fetched",
                source=source.source_id,
                location=source.location,
                document_count=len(documents),
            )

            stamp_metadata(documents, source)

            chunks = self.splitter.split_documents(documents)
            logger.info("chunks_split", source=source.source_id, chunk_count=len(chunks))

            return await self.vector_store.add_chunks(chunks)
        except Exception as e:
            logger.error(
                "source_load_failed",
                source=source.source_id,
                location=source.location,
                error=str(e),
            )
            raise IngestionError(f"Failed to load source '{source.source_id}': {e}", source.source_id) from e


class IngestionError(Exception):
    """Exception raised while loading the knowledge base."""

    def __init__(self, message: str, source_id: Optional[str] = None):
        self.message = message
        self.source_id = source_id
        super().__init__(self.message)
