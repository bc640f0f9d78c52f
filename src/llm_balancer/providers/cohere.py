"""Cohere generate adapter."""

from __future__ import annotations

from typing import Any

from llm_balancer.providers.base import BaseProvider
from llm_balancer.types import LLMRequest, LLMResponse, TokenUsage

_BASE_URL = "https://api.cohere.ai/v1"


class CohereProvider(BaseProvider):
    def _endpoint(self) -> str:
        return f"{(self.descriptor.base_url or _BASE_URL).rstrip('/')}/generate"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.descriptor.api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: LLMRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.descriptor.model,
            "prompt": request.prompt,
        }
        if request.max_tokens is not None:
            body["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.top_p is not None:
            body["p"] = request.top_p
        return body

    def _parse(self, data: dict[str, Any]) -> LLMResponse:
        generation = data["generations"][0]
        billed = (data.get("meta") or {}).get("billed_units") or {}
        input_tokens = billed.get("input_tokens", 0)
        output_tokens = billed.get("output_tokens", 0)
        return self._response(
            generation["text"],
            usage=TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            finish_reason=generation.get("finish_reason"),
        )
