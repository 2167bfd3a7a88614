"""Document readers: turn a URL or file into text-bearing Documents.

- HtmlDocumentReader fetches a page with httpx and extracts text with
  BeautifulSoup, one Document per page.
- PdfDocumentReader reads a PDF with pypdf, one Document per non-blank page.

Readers do not catch errors; the ingestion pipeline decides how to report
them.
"""

import io
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from pypdf import PdfReader

from ragcourse.config.schema import SourceConfig, SourceType
from ragcourse.entities import Document, DocumentType
from ragcourse.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "ragcourse/0.1"


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


class DocumentReader(ABC):
    """Reads one location into a list of Documents."""

    def __init__(self, location: str, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self.location = location
        self._http_client = http_client

    @abstractmethod
    async def read(self) -> list[Document]:
        """Fetch and parse the location."""

    async def _fetch(self) -> httpx.Response:
        if self._http_client is not None:
            response = await self._http_client.get(self.location)
        else:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=30.0,
                headers={"User-Agent": DEFAULT_USER_AGENT},
            ) as client:
                response = await client.get(self.location)
        response.raise_for_status()
        return response


class HtmlDocumentReader(DocumentReader):
    """Read an HTML page into a single Document.

    Text is taken from the element matched by ``selector`` (the body by
    default), one line per block. Script and style elements are dropped.
    The page title and the ``description``/``keywords`` meta tags, when
    present, become metadata.
    """

    METADATA_TAGS = ("description", "keywords")

    def __init__(
        self,
        location: str,
        http_client: Optional[httpx.AsyncClient] = None,
        selector: str = "body",
    ) -> None:
        super().__init__(location, http_client)
        self.selector = selector

    async def read(self) -> list[Document]:
        response = await self._fetch()
        return self.parse(response.text)

    def parse(self, html: str) -> list[Document]:
        soup = BeautifulSoup(html, "html.parser")
        for element in soup(["script", "style", "noscript"]):
            element.decompose()

        root = soup.select_one(self.selector) or soup
        text = root.get_text(separator="\n", strip=True)
        if not text:
            logger.warning("html_without_text", url=self.location)
            return []

        metadata: dict[str, str] = {"url": self.location}
        if soup.title and soup.title.string:
            metadata["title"] = soup.title.string.strip()
        for name in self.METADATA_TAGS:
            tag = soup.find("meta", attrs={"name": name})
            if tag and tag.get("content"):
                metadata[name] = tag["content"]

        return [Document(content=text, doc_type=DocumentType.HTML, metadata=metadata)]


class PdfDocumentReader(DocumentReader):
    """Read a PDF into one Document per page.

    ``location`` is a filesystem path or an http(s) URL. Page numbers in the
    metadata are 1-based; pages without extractable text are skipped.
    """

    async def read(self) -> list[Document]:
        if _is_url(self.location):
            response = await self._fetch()
            data = response.content
            file_name = self.location.rstrip("/").rsplit("/", 1)[-1]
        else:
            path = Path(self.location).expanduser()
            data = path.read_bytes()
            file_name = path.name
        return self.parse(data, file_name)

    def parse(self, data: bytes, file_name: str) -> list[Document]:
        reader = PdfReader(io.BytesIO(data))
        documents = []
        for page_number, page in enumerate(reader.pages, start=1):
            text = (page.extract_text() or "").strip()
            if not text:
                continue
            documents.append(
                Document(
                    content=text,
                    doc_type=DocumentType.PDF,
                    metadata={"file_name": file_name, "page_number": page_number},
                )
            )

        logger.debug(
            "pdf_parsed",
            file_name=file_name,
            page_count=len(reader.pages),
            document_count=len(documents),
        )
        return documents


def create_reader(source: SourceConfig, http_client: Optional[httpx.AsyncClient] = None) -> DocumentReader:
    """Pick the reader for a configured source."""
    if source.doc_type == SourceType.HTML:
        return HtmlDocumentReader(source.location, http_client)
    elif source.doc_type == SourceType.PDF:
        return PdfDocumentReader(source.location, http_client)
    raise ValueError(f"Unsupported source type: '{source.doc_type}'")
