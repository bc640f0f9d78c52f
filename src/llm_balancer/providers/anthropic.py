"""Anthropic Claude messages adapter."""

from __future__ import annotations

from typing import Any

from llm_balancer.providers.base import BaseProvider
from llm_balancer.types import LLMRequest, LLMResponse, TokenUsage

_BASE_URL = "https://api.anthropic.com/v1"
_API_VERSION = "2023-06-01"

# The messages API requires max_tokens on every call
_DEFAULT_MAX_TOKENS = 1000


class ClaudeProvider(BaseProvider):
    def _endpoint(self) -> str:
        return f"{(self.descriptor.base_url or _BASE_URL).rstrip('/')}/messages"

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.descriptor.api_key,
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }

    def _payload(self, request: LLMRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.descriptor.model,
            "max_tokens": request.max_tokens or _DEFAULT_MAX_TOKENS,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.top_p is not None:
            body["top_p"] = request.top_p
        return body

    def _parse(self, data: dict[str, Any]) -> LLMResponse:
        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        return self._response(
            data["content"][0]["text"],
            usage=TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            finish_reason=data.get("stop_reason"),
        )
