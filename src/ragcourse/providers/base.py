"""Abstract base classes for embedding and chat providers.

Why this exists:
- Allows swapping between remote model providers (OpenAI, Anthropic)
- Enables testing with fake providers
- Provides stable interface as providers evolve

How to extend:
1. Subclass EmbeddingProvider or ChatProvider
2. Implement all abstract methods
3. Register in the factories in ragcourse.providers
"""

import json
import os
import re
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, Field, ValidationError

from ragcourse.entities import ChatResult, Message

EntityT = TypeVar("EntityT", bound=BaseModel)

_ENV_VAR_NAME = re.compile(r"^[A-Z][A-Z0-9_]*$")
_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ProviderConfig(BaseModel):
    """Base configuration for all providers."""

    provider_type: str
    model_name: str
    api_key: Optional[str] = None
    extra_params: dict[str, Any] = Field(default_factory=dict)


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(self, message: str, provider: str, original_error: Optional[Exception] = None):
        self.message = message
        self.provider = provider
        self.original_error = original_error
        super().__init__(self.message)


def resolve_api_key(api_key: Optional[str], provider: str) -> str:
    """Resolve an API key that may be given directly or as an env var name.

    Args:
        api_key: The key itself, or the name of the variable holding it
        provider: Provider name for error reporting

    Returns:
        The key value

    Raises:
        ProviderError: If no key is configured or the named variable is unset
    """
    if not api_key:
        raise ProviderError(message="API key is required", provider=provider)

    env_value = os.getenv(api_key)
    if env_value:
        return env_value

    if _ENV_VAR_NAME.match(api_key):
        raise ProviderError(
            message=f"Environment variable '{api_key}' is not set or empty",
            provider=provider,
        )
    return api_key


class EmbeddingProvider(ABC):
    """Abstract interface for embedding providers.

    Implementations must handle:
    - Single text embedding
    - Batch text embedding
    - Model metadata (dimension, max tokens)
    """

    def __init__(self, config: ProviderConfig) -> None:
        """Initialize provider with configuration."""
        self.config = config

    @abstractmethod
    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Raises:
            ProviderError: If embedding generation fails
        """

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts, in input order.

        Raises:
            ProviderError: If embedding generation fails
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the embedding dimension for this model."""

    @abstractmethod
    def get_max_tokens(self) -> int:
        """Return the maximum token length for this model."""

    async def close(self) -> None:
        """Release client resources."""


class ChatProvider(ABC):
    """Abstract interface for chat completion providers.

    Implementations must handle:
    - A blocking call returning the full completion with metadata
    - A streaming call yielding content deltas
    """

    def __init__(self, config: ProviderConfig) -> None:
        """Initialize provider with configuration."""
        self.config = config
        self.model_name = config.model_name

    @abstractmethod
    async def chat(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> ChatResult:
        """Run a chat completion over an ordered list of turns.

        Raises:
            ProviderError: If the call fails
        """

    @abstractmethod
    def stream(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        """Stream a chat completion as content deltas.

        Raises:
            ProviderError: If the call fails
        """

    async def close(self) -> None:
        """Release client resources."""

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> str:
        """Single-turn convenience wrapper around :meth:`chat`."""
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(prompt))
        result = await self.chat(messages, max_tokens=max_tokens, temperature=temperature)
        return result.content

    async def generate_entity(
        self,
        prompt: str,
        entity_type: type[EntityT],
        system_prompt: Optional[str] = None,
    ) -> EntityT:
        """Ask for a JSON reply matching ``entity_type`` and parse it.

        Raises:
            ProviderError: If the reply does not validate against the model
        """
        schema = json.dumps(entity_type.model_json_schema())
        instructions = (
            "Respond only with a JSON object that conforms to this JSON schema. "
            "Do not include explanations or markdown.\n"
            f"{schema}"
        )
        if system_prompt:
            instructions = f"{system_prompt}\n\n{instructions}"

        raw = await self.generate(prompt, system_prompt=instructions, temperature=0.0)
        text = raw.strip()
        fenced = _CODE_FENCE.match(text)
        if fenced:
            text = fenced.group(1)

        try:
            return entity_type.model_validate_json(text)
        except ValidationError as e:
            raise ProviderError(
                message=f"Response did not match {entity_type.__name__}: {e}",
                provider=self.config.provider_type,
                original_error=e,
            ) from e
