"""Vendor adapters and the name → adapter registry."""

from __future__ import annotations

from llm_balancer.exceptions import ConfigurationError
from llm_balancer.providers.anthropic import ClaudeProvider
from llm_balancer.providers.base import BaseProvider
from llm_balancer.providers.cohere import CohereProvider
from llm_balancer.providers.gemini import GeminiProvider
from llm_balancer.providers.ollama import OllamaProvider
from llm_balancer.providers.openai import (
    GroqProvider,
    MistralProvider,
    OpenAICompatibleProvider,
    OpenAIProvider,
    PerplexityProvider,
    TogetherProvider,
)
from llm_balancer.types import ProviderDescriptor

PROVIDER_CLASSES: dict[str, type[BaseProvider]] = {
    "openai": OpenAIProvider,
    "claude": ClaudeProvider,
    "gemini": GeminiProvider,
    "cohere": CohereProvider,
    "mistral": MistralProvider,
    "perplexity": PerplexityProvider,
    "ollama": OllamaProvider,
    "together": TogetherProvider,
    "groq": GroqProvider,
}


def create_provider(descriptor: ProviderDescriptor) -> BaseProvider:
    """Build the adapter matching ``descriptor.name``."""
    cls = PROVIDER_CLASSES.get(descriptor.name.lower())
    if cls is None:
        raise ConfigurationError(f"Unsupported provider: {descriptor.name}")
    return cls(descriptor)


__all__ = [
    "BaseProvider",
    "ClaudeProvider",
    "CohereProvider",
    "GeminiProvider",
    "GroqProvider",
    "MistralProvider",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "OpenAIProvider",
    "PROVIDER_CLASSES",
    "PerplexityProvider",
    "TogetherProvider",
    "create_provider",
]
