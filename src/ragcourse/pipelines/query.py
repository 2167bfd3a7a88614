"""Query pipeline: retrieve context and answer with a chat model.

Why this exists:
- Combines similarity search with a grounded chat prompt
- Threads an optional caller-owned conversation memory through each call
- Offers both a blocking and a streaming answer

How to use:
    from ragcourse.pipelines.query import RAGService

    service = RAGService(config.retrieval, chat_provider, vector_store)
    memory = ConversationMemory()
    answer = await service.query("What is the latest Spring version?", memory)
"""

from collections.abc import AsyncIterator
from typing import Optional

from ragcourse.config.schema import ChatConfig, RetrievalConfig
from ragcourse.core.conversation import ConversationMemory
from ragcourse.entities import Message, SearchResult
from ragcourse.observability.logging import get_logger
from ragcourse.providers.base import ChatProvider, ProviderError
from ragcourse.storage.base import StorageError, VectorStore

logger = get_logger(__name__)

REFUSAL_PHRASE = "I don't have enough information to answer that question."

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions using only the context "
    "supplied with each question and the conversation so far. Do not use prior "
    "knowledge. Cite the sources you use by their [source: ...] label. "
    f'If the answer is not in the context, reply exactly: "{REFUSAL_PHRASE}"'
)

USER_PROMPT_TEMPLATE = """Context information is below, surrounded by ---------------------

---------------------
{context}
---------------------

Question: {question}"""


def format_context(results: list[SearchResult]) -> str:
    """Render retrieved chunks as a context block, one labelled entry per chunk."""
    parts = []
    for result in results:
        source = result.chunk.metadata.get("source", "unknown")
        parts.append(f"[source: {source}]\n{result.chunk.content}")
    return "\n\n".join(parts)


class RAGService:
    """Answers questions from the knowledge base."""

    def __init__(
        self,
        config: RetrievalConfig,
        chat_provider: ChatProvider,
        vector_store: VectorStore,
        chat_config: Optional[ChatConfig] = None,
    ):
        """Initialize the service.

        Args:
            config: Retrieval settings (top_k, threshold, memory window)
            chat_provider: Provider that produces the answer
            vector_store: Store searched for context
            chat_config: Generation settings (max_tokens, temperature)
        """
        self.config = config
        self.chat_provider = chat_provider
        self.vector_store = vector_store
        self.chat_config = chat_config or ChatConfig()

    async def retrieve(self, question: str) -> list[SearchResult]:
        """Similarity search for the question.

        Raises:
            QueryError: If the store or the embedding call fails
        """
        try:
            results = await self.vector_store.similarity_search(
                question,
                top_k=self.config.top_k,
                similarity_threshold=self.config.similarity_threshold,
            )
        except (StorageError, ProviderError) as e:
            logger.error("retrieval_failed", question=question, error=str(e))
            raise QueryError(f"Retrieval failed: {e}") from e

        logger.info(
            "context_retrieved",
            question=question,
            result_count=len(results),
            sources=sorted({r.chunk.metadata.get("source", "unknown") for r in results}),
        )
        return results

    def build_messages(
        self,
        question: str,
        results: list[SearchResult],
        memory: Optional[ConversationMemory] = None,
    ) -> list[Message]:
        """Compose system prompt, prior turns and the grounded user message."""
        messages = [Message.system(SYSTEM_PROMPT)]
        if memory is not None:
            messages.extend(memory.window(self.config.memory_window))
        messages.append(
            Message.user(USER_PROMPT_TEMPLATE.format(context=format_context(results), question=question))
        )
        return messages

    async def query(self, question: str, memory: Optional[ConversationMemory] = None) -> str:
        """Answer a question from retrieved context.

        Args:
            question: Natural-language question
            memory: Optional conversation memory; the exchange is appended to it

        Returns:
            The model's answer

        Raises:
            QueryError: If retrieval or generation fails
        """
        results = await self.retrieve(question)
        messages = self.build_messages(question, results, memory)

        try:
            result = await self.chat_provider.chat(
                messages,
                max_tokens=self.chat_config.max_tokens,
                temperature=self.chat_config.temperature,
            )
        except ProviderError as e:
            logger.error("answer_failed", question=question, error=str(e))
            raise QueryError(f"Answer generation failed: {e}") from e

        if memory is not None:
            memory.add_exchange(question, result.content)

        logger.info(
            "answer_completed",
            model=result.model,
            total_tokens=result.usage.total_tokens,
        )
        return result.content

    async def stream(
        self,
        question: str,
        memory: Optional[ConversationMemory] = None,
    ) -> AsyncIterator[str]:
        """Stream the answer as content deltas.

        The exchange is appended to ``memory`` only once the stream completes.
        """
        results = await self.retrieve(question)
        messages = self.build_messages(question, results, memory)

        parts: list[str] = []
        try:
            async for delta in self.chat_provider.stream(
                messages,
                max_tokens=self.chat_config.max_tokens,
                temperature=self.chat_config.temperature,
            ):
                parts.append(delta)
                yield delta
        except ProviderError as e:
            logger.error("answer_stream_failed", question=question, error=str(e))
            raise QueryError(f"Answer generation failed: {e}") from e

        if memory is not None:
            memory.add_exchange(question, "".join(parts))
        logger.info("answer_stream_completed", chunk_count=len(parts))


class QueryError(Exception):
    """Exception raised during query processing."""

    pass
