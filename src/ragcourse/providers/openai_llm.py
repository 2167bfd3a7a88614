"""OpenAI chat provider implementation.

Talks to the Chat Completions endpoint over plain HTTP, so any
OpenAI-compatible server (for example Ollama) works by changing ``base_url``.
"""

import json
from collections.abc import AsyncIterator, Sequence
from typing import Any, Optional

import httpx
import structlog

from ragcourse.entities import ChatResult, Message, TokenUsage
from ragcourse.providers.base import ChatProvider, ProviderConfig, ProviderError, resolve_api_key

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class OpenAIChatProvider(ChatProvider):
    """Chat provider using the OpenAI API (or compatible endpoints)."""

    def __init__(self, config: ProviderConfig) -> None:
        """Initialize the OpenAI chat provider.

        Args:
            config: Provider configuration with api_key, model_name, etc.
                ``extra_params`` may set ``base_url`` and ``timeout``.
        """
        super().__init__(config)
        self.api_key = resolve_api_key(config.api_key, "openai")
        self.base_url = config.extra_params.get("base_url", DEFAULT_BASE_URL)

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=config.extra_params.get("timeout", 60.0),
        )

    def _payload(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int],
        temperature: float,
        stream: bool = False,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model_name,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if stream:
            payload["stream"] = True
        return payload

    async def chat(
        self,
        messages: Sequence[Message],
        max_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> ChatResult:
        """Run a chat completion.

        Raises:
            ProviderError: If the request fails or the response is malformed
        """
        payload = self._payload(messages, max_tokens, temperature)
        try:
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
            choice = data["choices"][0]
            usage = data.get("usage") or {}
            result = ChatResult(
                content=choice["message"]["content"] or "",
                model=data.get("model", self.model_name),
                usage=TokenUsage(
                    prompt_tokens=usage.get("prompt_tokens", 0),
                    completion_tokens=usage.get("completion_tokens", 0),
                ),
                finish_reason=choice.get("finish_reason"),
            )
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                message=f"OpenAI API error: {e.response.status_code} - {e.response.text}",
                provider="openai",
                original_error=e,
            ) from e
        except (httpx.HTTPError, KeyError, IndexError, ValueError) as e:
            raise ProviderError(
                message=f"Chat completion failed: {str(e)}",
                provider="openai",
                original_error=e,
            ) from e

        logger.info(
            "openai_chat_completed",
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
        """Stream content deltas from a server-sent event response."""
        payload = self._payload(messages, max_tokens, temperature, stream=True)
        try:
            async with self.client.stream("POST", "/chat/completions", json=payload) as response:
                if response.is_error:
                    body = await response.aread()
                    raise ProviderError(
                        message=f"OpenAI API error: {response.status_code} - {body.decode(errors='replace')}",
                        provider="openai",
                    )
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    event = json.loads(data)
                    if not event.get("choices"):
                        continue
                    delta = event["choices"][0].get("delta", {}).get("content")
                    if delta:
                        yield delta
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(
                message=f"Chat stream failed: {str(e)}",
                provider="openai",
                original_error=e,
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
