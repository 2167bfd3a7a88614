"""Provider abstractions: embedding and chat backends."""

from ragcourse.providers.base import (
    ChatProvider,
    EmbeddingProvider,
    ProviderConfig,
    ProviderError,
    resolve_api_key,
)


def create_embedding_provider(config: ProviderConfig) -> EmbeddingProvider:
    """Factory function to create embedding providers based on configuration.

    Args:
        config: Provider configuration with provider_type

    Returns:
        Initialized embedding provider

    Raises:
        ValueError: If provider_type is unknown
        ProviderError: If provider initialization fails or dependencies are missing
    """
    provider_type = config.provider_type.lower()

    if provider_type == "openai":
        try:
            from ragcourse.providers.openai import OpenAIEmbeddingProvider
        except ImportError as e:
            raise ProviderError(
                message="OpenAI embedding provider requires the openai package",
                provider="openai",
                original_error=e,
            ) from e
        return OpenAIEmbeddingProvider(config)

    raise ValueError(
        f"Unknown embedding provider type: '{provider_type}'. "
        f"Supported types: openai"
    )


def create_chat_provider(config: ProviderConfig) -> ChatProvider:
    """Factory function to create chat providers based on configuration.

    Example:
        config = ProviderConfig(
            provider_type="anthropic",
            model_name="claude-3-5-sonnet-20240620",
            api_key="ANTHROPIC_API_KEY",
        )
        provider = create_chat_provider(config)

    Raises:
        ValueError: If provider_type is unknown
        ProviderError: If provider initialization fails or dependencies are missing
    """
    provider_type = config.provider_type.lower()

    if provider_type == "openai":
        from ragcourse.providers.openai_llm import OpenAIChatProvider

        return OpenAIChatProvider(config)

    elif provider_type == "anthropic":
        try:
            from ragcourse.providers.anthropic_llm import AnthropicChatProvider
        except ImportError as e:
            raise ProviderError(
                message="Anthropic chat provider requires the anthropic package",
                provider="anthropic",
                original_error=e,
            ) from e
        return AnthropicChatProvider(config)

    raise ValueError(
        f"Unknown chat provider type: '{provider_type}'. "
        f"Supported types: openai, anthropic"
    )


__all__ = [
    "ChatProvider",
    "EmbeddingProvider",
    "ProviderConfig",
    "ProviderError",
    "create_chat_provider",
    "create_embedding_provider",
    "resolve_api_key",
]
