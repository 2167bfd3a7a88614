"""Token-based text chunking.

Why this exists:
- Splits documents into embedding-sized chunks measured in model tokens
- Prefers to cut at sentence or line boundaries inside each token window

The algorithm walks the token stream in windows of ``chunk_size`` tokens.
Each window is decoded and, when a sentence boundary (``.``, ``?``, ``!`` or a
newline) appears past ``min_chunk_size_chars``, trimmed back to it. The
stream then advances by the token length of the kept text. After
``max_num_chunks`` windows any remaining tokens become a single final chunk.
"""

from collections.abc import Iterator

import tiktoken

from ragcourse.config.schema import ChunkingConfig
from ragcourse.entities import Chunk, Document
from ragcourse.observability.logging import get_logger

logger = get_logger(__name__)

_BOUNDARIES = (".", "?", "!", "\n")


class TokenTextSplitter:
    """Split documents into token-bounded chunks."""

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self.config = config or ChunkingConfig()
        self.encoding = tiktoken.get_encoding(self.config.encoding_name)

    def split_text(self, text: str) -> Iterator[str]:
        """Yield chunk texts for ``text``.

        Args:
            text: Text to split

        Yields:
            Stripped chunk strings longer than ``min_chunk_length_to_embed``
        """
        if not text or not text.strip():
            return

        cfg = self.config
        tokens = self.encoding.encode(text)
        num_chunks = 0

        while tokens and num_chunks < cfg.max_num_chunks:
            window = tokens[: cfg.chunk_size]
            chunk_text = self.encoding.decode(window)

            if not chunk_text.strip():
                tokens = tokens[len(window):]
                continue

            last_boundary = max(chunk_text.rfind(mark) for mark in _BOUNDARIES)
            if last_boundary != -1 and last_boundary > cfg.min_chunk_size_chars:
                chunk_text = chunk_text[: last_boundary + 1]

            kept = chunk_text.strip() if cfg.keep_separator else chunk_text.replace("\n", " ").strip()
            if len(kept) > cfg.min_chunk_length_to_embed:
                yield kept

            # Re-encoding can disagree with the window by a token; always advance
            consumed = len(self.encoding.encode(chunk_text))
            tokens = tokens[min(max(consumed, 1), len(window)):]
            num_chunks += 1

        if tokens:
            remaining = self.encoding.decode(tokens).replace("\n", " ").strip()
            if len(remaining) > cfg.min_chunk_length_to_embed:
                yield remaining

    def split_document(self, document: Document) -> list[Chunk]:
        """Split one document; every chunk copies the document's metadata."""
        return [
            Chunk(
                document_id=document.id,
                content=text,
                chunk_index=idx,
                metadata=dict(document.metadata),
            )
            for idx, text in enumerate(self.split_text(document.content))
        ]

    def split_documents(self, documents: list[Document]) -> list[Chunk]:
        """Split several documents, keeping document order."""
        chunks: list[Chunk] = []
        for document in documents:
            chunks.extend(self.split_document(document))

        logger.debug(
            "documents_split",
            document_count=len(documents),
            chunk_count=len(chunks),
            avg_chunk_size=sum(len(c.content) for c in chunks) // len(chunks) if chunks else 0,
        )
        return chunks
