"""Google Gemini generateContent adapter."""

from __future__ import annotations

from typing import Any

from llm_balancer.providers.base import BaseProvider
from llm_balancer.types import LLMRequest, LLMResponse, TokenUsage

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(BaseProvider):
    def _endpoint(self) -> str:
        base_url = (self.descriptor.base_url or _BASE_URL).rstrip("/")
        return f"{base_url}/models/{self.descriptor.model}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self.descriptor.api_key,
            "Content-Type": "application/json",
        }

    def _payload(self, request: LLMRequest) -> dict[str, Any]:
        generation_config: dict[str, Any] = {}
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature
        if request.top_p is not None:
            generation_config["topP"] = request.top_p
        if request.max_tokens is not None:
            generation_config["maxOutputTokens"] = request.max_tokens
        return {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }

    def _parse(self, data: dict[str, Any]) -> LLMResponse:
        candidate = data["candidates"][0]
        meta = data.get("usageMetadata") or {}
        return self._response(
            candidate["content"]["parts"][0]["text"],
            usage=TokenUsage(
                prompt_tokens=meta.get("promptTokenCount", 0),
                completion_tokens=meta.get("candidatesTokenCount", 0),
                total_tokens=meta.get("totalTokenCount", 0),
            ),
            finish_reason=candidate.get("finishReason"),
        )
