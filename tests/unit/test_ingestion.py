"""Tests for the knowledge base loader."""

import httpx
import pytest

from conftest import make_pdf, make_transport
from ragcourse.config.schema import ChunkingConfig, KnowledgeBaseConfig, SourceConfig, SourceType, VectorStoreConfig
from ragcourse.config.startup import StartupConfig
from ragcourse.core.chunking import TokenTextSplitter
from ragcourse.entities import Document
from ragcourse.pipelines.ingestion import IngestionError, KnowledgeBaseLoader, stamp_metadata
from ragcourse.storage.base import StorageError
from ragcourse.storage.memory import InMemoryVectorStore

ENABLED = StartupConfig(ingestion_enabled=True)


class PersistentMemoryStore(InMemoryVectorStore):
    """In-memory store that claims to survive restarts."""

    is_persistent = True


class BrokenProbeStore(PersistentMemoryStore):
    async def similarity_search(self, *args, **kwargs):
        raise StorageError(message="connection refused", storage_type="test")


@pytest.fixture
def splitter():
    return TokenTextSplitter(ChunkingConfig(chunk_size=64, min_chunk_size_chars=40))


@pytest.fixture
def kb_config(sources):
    return KnowledgeBaseConfig(ingestion_enabled=True, sources=sources)


def make_store(cls, embedding_provider):
    return cls(VectorStoreConfig(collection_name="test"), embedding_provider)


@pytest.mark.asyncio
class TestKnowledgeBaseLoader:
    """Test KnowledgeBaseLoader functionality."""

    async def test_disabled_loader_does_nothing(self, kb_config, splitter, embedding_provider, pages):
        """With ingestion off no source is fetched and nothing is stored."""
        requests: list[str] = []
        store = make_store(InMemoryVectorStore, embedding_provider)

        async with httpx.AsyncClient(transport=make_transport(pages, requests)) as client:
            loader = KnowledgeBaseLoader(kb_config, StartupConfig(), store, splitter, client)
            report = await loader.load()

        assert report.skipped is True
        assert report.reason == "ingestion_disabled"
        assert requests == []
        assert await store.count() == 0
        assert embedding_provider.embed_text_calls == []

    async def test_load_in_memory(self, kb_config, splitter, embedding_provider, http_client):
        """A non-persistent store is loaded without probing."""
        store = make_store(InMemoryVectorStore, embedding_provider)
        loader = KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, http_client)

        report = await loader.load()

        assert report.skipped is False
        assert set(report.chunk_counts) == {"spring_framework", "drake_feud"}
        assert all(count > 0 for count in report.chunk_counts.values())
        assert await store.count() == report.total_chunks
        assert embedding_provider.embed_text_calls == []

    async def test_every_chunk_carries_source_and_type(self, kb_config, splitter, embedding_provider, http_client):
        store = make_store(InMemoryVectorStore, embedding_provider)
        await KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, http_client).load()

        sources = {chunk.metadata["source"] for _, chunk in store.entries}
        assert sources == {"spring_framework", "drake_feud"}
        for _, chunk in store.entries:
            assert chunk.metadata["type"] == "html"
            assert chunk.metadata["url"].startswith("https://example.test/wiki/")

    async def test_in_memory_reloads_every_time(self, kb_config, splitter, embedding_provider, http_client):
        """Without persistence a second load adds the data again."""
        store = make_store(InMemoryVectorStore, embedding_provider)
        loader = KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, http_client)

        first = await loader.load()
        second = await loader.load()

        assert second.skipped is False
        assert await store.count() == first.total_chunks * 2

    async def test_persistent_store_loaded_once(self, kb_config, splitter, embedding_provider, pages):
        """A second load against a populated persistent store is skipped."""
        requests: list[str] = []
        store = make_store(PersistentMemoryStore, embedding_provider)

        async with httpx.AsyncClient(transport=make_transport(pages, requests)) as client:
            loader = KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, client)
            first = await loader.load()
            count_after_first = await store.count()
            fetched_after_first = len(requests)

            second = await loader.load()

        assert first.skipped is False
        assert second.skipped is True
        assert second.reason == "data_already_present"
        assert await store.count() == count_after_first
        assert len(requests) == fetched_after_first

    async def test_probe_uses_configured_query(self, sources, splitter, embedding_provider, http_client):
        kb_config = KnowledgeBaseConfig(ingestion_enabled=True, sources=sources, probe_query="Kendrick Lamar")
        store = make_store(PersistentMemoryStore, embedding_provider)
        await store.add_chunks(
            TokenTextSplitter().split_documents([Document(content="existing data", metadata={"source": "x"})])
        )

        report = await KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, http_client).load()

        assert report.skipped is True
        assert embedding_provider.embed_text_calls == ["Kendrick Lamar"]

    async def test_failed_probe_means_empty(self, kb_config, splitter, embedding_provider, http_client):
        """A probe error is logged and the load goes ahead."""
        store = make_store(BrokenProbeStore, embedding_provider)
        loader = KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, http_client)

        assert await loader.data_exists() is False
        report = await loader.load()

        assert report.skipped is False
        assert await store.count() == report.total_chunks

    async def test_fetch_failure_raises(self, splitter, embedding_provider, http_client):
        """A failing source aborts the load with its identifier."""
        kb_config = KnowledgeBaseConfig(
            sources=[SourceConfig(source_id="broken", location="https://example.test/missing")]
        )
        store = make_store(InMemoryVectorStore, embedding_provider)
        loader = KnowledgeBaseLoader(kb_config, ENABLED, store, splitter, http_client)

        with pytest.raises(IngestionError, match="broken") as exc_info:
            await loader.load()

        assert exc_info.value.source_id == "broken"
        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    async def test_pdf_source(self, tmp_path, splitter, embedding_provider):
        path = tmp_path / "WEF_Future_of_Jobs_Report_2025.pdf"
        path.write_bytes(make_pdf(["Future of Jobs Report 2025 overview", "Skills outlook and workforce strategy"]))
        source = SourceConfig(source_id="wef_jobs_report", location=str(path), doc_type=SourceType.PDF)
        store = make_store(InMemoryVectorStore, embedding_provider)
        loader = KnowledgeBaseLoader(KnowledgeBaseConfig(sources=[source]), ENABLED, store, splitter)

        count = await loader.load_source(source)

        assert count == 2
        pages = sorted(chunk.metadata["page_number"] for _, chunk in store.entries)
        assert pages == [1, 2]
        for _, chunk in store.entries:
            assert chunk.metadata["source"] == "wef_jobs_report"
            assert chunk.metadata["type"] == "pdf"
            assert chunk.metadata["file_name"] == "WEF_Future_of_Jobs_Report_2025.pdf"


def test_stamp_metadata():
    source = SourceConfig(source_id="spring_framework", location="https://example.test", doc_type=SourceType.HTML)
    docs = [Document(content="one", metadata={"url": "u"}), Document(content="two")]

    stamp_metadata(docs, source)

    assert docs[0].metadata == {"url": "u", "source": "spring_framework", "type": "html"}
    assert docs[1].metadata["source"] == "spring_framework"
