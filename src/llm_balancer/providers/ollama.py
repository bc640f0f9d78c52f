"""Local Ollama ``/api/generate`` adapter."""

from __future__ import annotations

from typing import Any

from llm_balancer.providers.base import BaseProvider
from llm_balancer.types import LLMRequest, LLMResponse, TokenUsage

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaProvider(BaseProvider):
    def _endpoint(self) -> str:
        return f"{(self.descriptor.base_url or DEFAULT_BASE_URL).rstrip('/')}/api/generate"

    def _payload(self, request: LLMRequest) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if request.max_tokens is not None:
            options["num_predict"] = request.max_tokens
        if request.temperature is not None:
            options["temperature"] = request.temperature
        if request.top_p is not None:
            options["top_p"] = request.top_p
        return {
            "model": self.descriptor.model,
            "prompt": request.prompt,
            "stream": False,
            "options": options,
        }

    def _parse(self, data: dict[str, Any]) -> LLMResponse:
        prompt_tokens = data.get("prompt_eval_count", 0)
        completion_tokens = data.get("eval_count", 0)
        return self._response(
            data["response"],
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            finish_reason="stop" if data.get("done") else "length",
        )
