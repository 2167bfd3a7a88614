"""Anthropic chat provider using the official SDK.

System turns are lifted out of the message list and sent through the
dedicated ``system`` parameter, as the Messages API expects.
"""

from collections.abc import AsyncIterator, Sequence
from typing import Any, Optional

import structlog

from ragcourse.entities import ChatResult, Message, MessageRole, TokenUsage
from ragcourse.providers.base import ChatProvider, ProviderConfig, ProviderError, resolve_api_key

logger = structlog.get_logger(__name__)

# The Messages API requires max_tokens on every request
DEFAULT_MAX_TOKENS = 1024


class AnthropicChatProvider(ChatProvider):
    """Chat provider backed by ``anthropic.AsyncAnthropic``."""

    def __init__(self, config: ProviderConfig) -> None:
        super().__init__(config)
        api_key = resolve_api_key(config.api_key, "anthropic")

        try:
            from anthropic import AsyncAnthropic

            self.client = AsyncAnthropic(api_key=api_key, **config.extra_params)
        except ImportError as e:
            raise ProviderError(
                message="anthropic package not installed. Install with: pip install anthropic",
                provider="anthropic",
                original_error=e,
            ) from e

        logger.info("anthropic_chat_provider_initialized", model_name=self.model_name)

    def _request(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int],
        temperature: float,
    ) -> dict[str, Any]:
        system_parts = [m.content for m in messages if m.role == MessageRole.SYSTEM]
        turns = [
            {"role": m.role.value, "content": m.content}
            for m in messages
            if m.role != MessageRole.SYSTEM
        ]
        request: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
            "messages": turns,
            "temperature": temperature,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)
        return request

    async def chat(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> ChatResult:
        request = self._request(messages, max_tokens, temperature)
        try:
            response = await self.client.messages.create(**request)
        except Exception as e:
            raise ProviderError(
                message=f"Anthropic API error: {str(e)}",
                provider="anthropic",
                original_error=e,
            ) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        result = ChatResult(
            content=text,
            model=response.model,
            usage=TokenUsage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
            ),
            finish_reason=response.stop_reason,
        )
        logger.info(
            "anthropic_chat_completed",
            model=result.model,
            total_tokens=result.usage.total_tokens,
        )
        return result

    async def stream(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> AsyncIterator[str]:
        request = self._request(messages, max_tokens, temperature)
        try:
            async with self.client.messages.stream(**request) as stream:
                async for text in stream.text_stream:
                    yield text
        except Exception as e:
            raise ProviderError(
                message=f"Anthropic stream failed: {str(e)}",
                provider="anthropic",
                original_error=e,
            ) from e

    async def close(self) -> None:
        await self.client.close()
