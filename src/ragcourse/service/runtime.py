"""Runtime assembly.

Builds the providers, the single vector store selected for this process and
the two pipelines that share it.
"""

from dataclasses import dataclass
from typing import Optional

from ragcourse.config.schema import AppConfig
from ragcourse.config.startup import StartupConfig, resolve_startup
from ragcourse.core.chunking import TokenTextSplitter
from ragcourse.observability.logging import get_logger
from ragcourse.pipelines.ingestion import KnowledgeBaseLoader
from ragcourse.pipelines.query import RAGService
from ragcourse.providers import ChatProvider, EmbeddingProvider, ProviderConfig, create_chat_provider, create_embedding_provider
from ragcourse.storage import VectorStore, create_vector_store

logger = get_logger(__name__)


@dataclass
class Runtime:
    """Components wired for one process."""

    config: AppConfig
    startup: StartupConfig
    embedding_provider: EmbeddingProvider
    chat_provider: ChatProvider
    vector_store: VectorStore
    loader: KnowledgeBaseLoader
    rag_service: RAGService

    async def close(self) -> None:
        await self.vector_store.close()
        await self.embedding_provider.close()
        await self.chat_provider.close()


def embedding_provider_config(config: AppConfig) -> ProviderConfig:
    return ProviderConfig(
        provider_type=config.embedding.provider.value,
        model_name=config.embedding.model_name,
        api_key=config.embedding.api_key,
        extra_params=config.embedding.extra_params,
    )


def chat_provider_config(config: AppConfig) -> ProviderConfig:
    return ProviderConfig(
        provider_type=config.chat.provider.value,
        model_name=config.chat.model_name,
        api_key=config.chat.api_key,
        extra_params=config.chat.extra_params,
    )


async def build_runtime(
    config: AppConfig,
    startup: Optional[StartupConfig] = None,
    embedding_provider: Optional[EmbeddingProvider] = None,
    chat_provider: Optional[ChatProvider] = None,
) -> Runtime:
    """Create and initialize every component.

    Exactly one vector store is created, for ``startup.backend``, and the
    same instance is handed to the loader and the RAG service.

    Args:
        config: Loaded application configuration
        startup: Activation flags; resolved from ``config`` when omitted
        embedding_provider: Use this provider instead of building one
        chat_provider: Use this provider instead of building one

    Raises:
        ProviderError: If a provider cannot be created
        StorageError: If the vector store cannot be initialized
    """
    startup = startup or resolve_startup(config)

    embedding_provider = embedding_provider or create_embedding_provider(embedding_provider_config(config))
    chat_provider = chat_provider or create_chat_provider(chat_provider_config(config))

    store_config = config.vector_store.model_copy(update={"backend": startup.backend})
    vector_store = create_vector_store(
        store_config,
        embedding_provider,
        batch_size=config.embedding.batch_size,
    )
    await vector_store.initialize()

    loader = KnowledgeBaseLoader(
        config.knowledge_base,
        startup,
        vector_store,
        TokenTextSplitter(config.chunking),
    )
    rag_service = RAGService(config.retrieval, chat_provider, vector_store, chat_config=config.chat)

    logger.info(
        "runtime_ready",
        backend=startup.backend.value,
        vector_store=type(vector_store).__name__,
        ingestion_enabled=startup.ingestion_enabled,
    )
    return Runtime(
        config=config,
        startup=startup,
        embedding_provider=embedding_provider,
        chat_provider=chat_provider,
        vector_store=vector_store,
        loader=loader,
        rag_service=rag_service,
    )
