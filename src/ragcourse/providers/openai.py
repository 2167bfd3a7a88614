"""OpenAI embedding provider using the official API.

Chunks and queries are embedded remotely; nothing is computed locally.

Trade-offs:
- API costs per token
- Requires internet connection
- Data sent to third-party service
- Rate limits apply
"""

import structlog

from ragcourse.providers.base import EmbeddingProvider, ProviderConfig, ProviderError, resolve_api_key

logger = structlog.get_logger(__name__)


MODEL_METADATA = {
    "text-embedding-ada-002": {"dimension": 1536, "max_tokens": 8191},
    "text-embedding-3-small": {"dimension": 1536, "max_tokens": 8191},
    "text-embedding-3-large": {"dimension": 3072, "max_tokens": 8191},
}

DEFAULT_MODEL = "text-embedding-3-small"

# Maximum number of inputs per embeddings request
MAX_BATCH_SIZE = 2048


def _wrap_openai_error(e: Exception, action: str) -> ProviderError:
    error_message = str(e)
    lowered = error_message.lower()

    if "authentication" in lowered or "api_key" in lowered:
        message = f"OpenAI authentication failed: {error_message}"
    elif "rate_limit" in lowered or "rate limit" in lowered:
        message = f"OpenAI rate limit exceeded: {error_message}"
    elif "connection" in lowered or "network" in lowered:
        message = f"Network error connecting to OpenAI: {error_message}"
    else:
        message = f"Failed to {action}: {error_message}"

    return ProviderError(message=message, provider="openai", original_error=e)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embedding provider.

    Example:
        config = ProviderConfig(
            provider_type="openai",
            model_name="text-embedding-3-small",
            api_key="OPENAI_API_KEY",
        )
        provider = OpenAIEmbeddingProvider(config)
        embedding = await provider.embed_text("Hello world")
    """

    def __init__(self, config: ProviderConfig) -> None:
        """Initialize OpenAI embedding provider.

        Args:
            config: Provider configuration with api_key and model_name

        Raises:
            ProviderError: If API key is missing or client initialization fails
        """
        super().__init__(config)

        api_key = resolve_api_key(config.api_key, "openai")
        self.model_name = config.model_name or DEFAULT_MODEL

        if self.model_name in MODEL_METADATA:
            metadata = MODEL_METADATA[self.model_name]
            self._dimension = metadata["dimension"]
            self._max_tokens = metadata["max_tokens"]
        else:
            logger.warning(
                "unknown_openai_model",
                model_name=self.model_name,
                known_models=list(MODEL_METADATA.keys()),
            )
            self._dimension = 1536
            self._max_tokens = 8191

        try:
            from openai import AsyncOpenAI

            client_kwargs = {"api_key": api_key}
            client_kwargs.update(config.extra_params)
            self.client = AsyncOpenAI(**client_kwargs)
        except ImportError as e:
            raise ProviderError(
                message="openai package not installed. Install with: pip install openai",
                provider="openai",
                original_error=e,
            ) from e
        except Exception as e:
            raise ProviderError(
                message=f"Failed to initialize OpenAI client: {str(e)}",
                provider="openai",
                original_error=e,
            ) from e

        logger.info(
            "openai_embedding_provider_initialized",
            model_name=self.model_name,
            dimension=self._dimension,
        )

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Raises:
            ProviderError: If text is empty or API call fails
        """
        if not text or not text.strip():
            raise ProviderError(message="Cannot embed empty text", provider="openai")

        try:
            response = await self.client.embeddings.create(input=text, model=self.model_name)
        except Exception as e:
            raise _wrap_openai_error(e, "generate embedding") from e

        if getattr(response, "usage", None):
            logger.debug(
                "openai_embedding_generated",
                tokens_used=response.usage.total_tokens,
                model=self.model_name,
            )
        return response.data[0].embedding

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts.

        Splits large inputs into several API calls of at most MAX_BATCH_SIZE.

        Raises:
            ProviderError: If any text is empty or API call fails
        """
        if not texts:
            return []

        for i, text in enumerate(texts):
            if not text or not text.strip():
                raise ProviderError(
                    message=f"Cannot embed empty text at index {i}",
                    provider="openai",
                )

        all_embeddings: list[list[float]] = []
        total_tokens = 0
        for i in range(0, len(texts), MAX_BATCH_SIZE):
            batch = texts[i : i + MAX_BATCH_SIZE]
            try:
                response = await self.client.embeddings.create(input=batch, model=self.model_name)
            except Exception as e:
                raise _wrap_openai_error(e, "generate batch embeddings") from e

            all_embeddings.extend(item.embedding for item in response.data)
            if getattr(response, "usage", None):
                total_tokens += response.usage.total_tokens

        logger.info(
            "openai_batch_embeddings_generated",
            total_texts=len(texts),
            total_tokens=total_tokens,
            model=self.model_name,
        )
        return all_embeddings

    def get_dimension(self) -> int:
        return self._dimension

    def get_max_tokens(self) -> int:
        return self._max_tokens

    async def close(self) -> None:
        """Close the OpenAI client connection."""
        logger.debug("closing_openai_embedding_provider", model_name=self.model_name)
        await self.client.close()

    async def __aenter__(self) -> "OpenAIEmbeddingProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
