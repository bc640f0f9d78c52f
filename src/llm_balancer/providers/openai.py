"""OpenAI-compatible chat-completions adapters.

OpenAI, Mistral, Perplexity, Together and Groq all speak the same
``/chat/completions`` schema and differ only in their default base URL.
"""

from __future__ import annotations

from typing import Any

from llm_balancer.providers.base import BaseProvider
from llm_balancer.types import LLMRequest, LLMResponse, TokenUsage


class OpenAICompatibleProvider(BaseProvider):
    default_base_url = "https://api.openai.com/v1"

    def _endpoint(self) -> str:
        base_url = (self.descriptor.base_url or self.default_base_url).rstrip("/")
        return f"{base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.descriptor.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: LLMRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.descriptor.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "stream": False,
        }
        if request.max_tokens is not None:
            body["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.top_p is not None:
            body["top_p"] = request.top_p
        return body

    def _parse(self, data: dict[str, Any]) -> LLMResponse:
        choice = data["choices"][0]
        usage = data.get("usage") or {}
        return self._response(
            choice["message"]["content"],
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ),
            finish_reason=choice.get("finish_reason"),
        )


class OpenAIProvider(OpenAICompatibleProvider):
    default_base_url = "https://api.openai.com/v1"


class MistralProvider(OpenAICompatibleProvider):
    default_base_url = "https://api.mistral.ai/v1"


class PerplexityProvider(OpenAICompatibleProvider):
    default_base_url = "https://api.perplexity.ai"


class TogetherProvider(OpenAICompatibleProvider):
    default_base_url = "https://api.together.xyz/v1"


class GroqProvider(OpenAICompatibleProvider):
    default_base_url = "https://api.groq.com/openai/v1"
