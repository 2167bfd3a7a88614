"""Shared fixtures: deterministic fake providers and small configurations."""

import hashlib
import re
from collections.abc import AsyncIterator, Sequence
from typing import Optional

import pytest

from ragcourse.config.schema import (
    AppConfig,
    ChunkingConfig,
    KnowledgeBaseConfig,
    RetrievalConfig,
    SourceConfig,
    SourceType,
    VectorStoreConfig,
)
from ragcourse.entities import ChatResult, Message, TokenUsage
from ragcourse.providers.base import ChatProvider, EmbeddingProvider, ProviderConfig

DIMENSION = 64
_WORD = re.compile(r"[a-z0-9]+")


class FakeEmbeddingProvider(EmbeddingProvider):
    """Bag-of-words hashing embeddings; texts sharing words score higher."""

    def __init__(self) -> None:
        super().__init__(ProviderConfig(provider_type="fake", model_name="fake-embedding"))
        self.embed_text_calls: list[str] = []
        self.embed_batch_calls: list[list[str]] = []
        self.closed = False

    @staticmethod
    def vectorize(text: str) -> list[float]:
        # Bias component keeps every vector non-zero
        vector = [0.0] * DIMENSION
        vector[0] = 0.1
        for word in _WORD.findall(text.lower()):
            index = 1 + int(hashlib.md5(word.encode()).hexdigest(), 16) % (DIMENSION - 1)
            vector[index] += 1.0
        return vector

    async def embed_text(self, text: str) -> list[float]:
        self.embed_text_calls.append(text)
        return self.vectorize(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.embed_batch_calls.append(list(texts))
        return [self.vectorize(t) for t in texts]

    def get_dimension(self) -> int:
        return DIMENSION

    def get_max_tokens(self) -> int:
        return 8191

    async def close(self) -> None:
        self.closed = True


class FakeChatProvider(ChatProvider):
    """Returns a canned answer and records every request."""

    def __init__(self, answer: str = "Spring Framework 6.2 is the latest version.") -> None:
        super().__init__(ProviderConfig(provider_type="fake", model_name="fake-chat"))
        self.answer = answer
        self.requests: list[list[Message]] = []
        self.closed = False

    async def chat(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> ChatResult:
        self.requests.append(list(messages))
        return ChatResult(
            content=self.answer,
            model="fake-chat",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
            finish_reason="stop",
        )

    async def stream(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        self.requests.append(list(messages))
        for word in self.answer.split(" "):
            yield word + " "

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def embedding_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def chat_provider():
    return FakeChatProvider()


@pytest.fixture
def sources():
    return [
        SourceConfig(
            source_id="spring_framework",
            location="https://example.test/wiki/Spring_Framework",
            doc_type=SourceType.HTML,
        ),
        SourceConfig(
            source_id="drake_feud",
            location="https://example.test/wiki/Drake_Kendrick_Lamar_feud",
            doc_type=SourceType.HTML,
        ),
    ]


@pytest.fixture
def app_config(tmp_path, sources):
    """Small in-memory configuration with ingestion switched on."""
    return AppConfig(
        vector_store=VectorStoreConfig(
            collection_name="test_collection",
            persist_directory=tmp_path / "chroma",
        ),
        chunking=ChunkingConfig(chunk_size=64, min_chunk_size_chars=40),
        knowledge_base=KnowledgeBaseConfig(ingestion_enabled=True, sources=sources),
        retrieval=RetrievalConfig(top_k=3),
    )


SPRING_PAGE = """<html>
<head>
  <title>Spring Framework - Wikipedia</title>
  <meta name="description" content="Application framework for Java">
  <script>var tracking = "ignore me";</script>
</head>
<body>
  <h1>Spring Framework</h1>
  <p>The Spring Framework is an application framework and inversion of control container for the Java platform.</p>
  <p>Spring Framework 6.2 is the latest major release line of the Spring Framework.</p>
</body>
</html>"""

FEUD_PAGE = """<html>
<head><title>Drake-Kendrick Lamar feud - Wikipedia</title></head>
<body>
  <p>The feud between rappers Drake and Kendrick Lamar escalated in 2024 with a series of diss tracks.</p>
  <p>Kendrick Lamar released Not Like Us, which topped the charts and won Grammy awards.</p>
</body>
</html>"""


def make_transport(pages: dict[str, str], requests: Optional[list] = None):
    """An httpx transport serving fixed HTML pages; unknown URLs get a 404."""
    import httpx

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(str(request.url))
        body = pages.get(str(request.url))
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=body, headers={"content-type": "text/html"})

    return httpx.MockTransport(handler)


@pytest.fixture
def pages(sources):
    return {
        sources[0].location: SPRING_PAGE,
        sources[1].location: FEUD_PAGE,
    }


@pytest.fixture
async def http_client(pages):
    import httpx

    async with httpx.AsyncClient(transport=make_transport(pages)) as client:
        yield client


def make_pdf(pages: list[str]) -> bytes:
    """Build a minimal PDF with one Helvetica text line per page."""
    objects: list[bytes] = []
    page_count = len(pages)
    font_id = 3 + 2 * page_count
    kids = " ".join(f"{3 + 2 * i} 0 R" for i in range(page_count))

    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode())
    for i, text in enumerate(pages):
        content_id = 4 + 2 * i
        objects.append(
            (
                f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Contents {content_id} 0 R /Resources << /Font << /F1 {font_id} 0 R >> >> >>"
            ).encode()
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode() if text else b""
        objects.append(
            b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream"
        )
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode()
    return bytes(out)
