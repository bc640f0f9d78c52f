"""LLM Balancer configuration, loaded from environment / .env file."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from llm_balancer.types import (
    BalancerConfig,
    CustomStrategyFn,
    ProviderDescriptor,
    StrategyKind,
)

DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-3.5-turbo",
    "claude": "claude-3-haiku",
    "gemini": "gemini-pro",
    "cohere": "command",
    "mistral": "mistral-small",
    "perplexity": "pplx-7b-online",
    "groq": "llama2-70b-4096",
    "together": "llama-2-70b",
    "ollama": "llama2",
}

# Vendors discovered from ``<NAME>_API_KEY``, in auto-configuration order
KEYED_PROVIDERS: tuple[str, ...] = (
    "openai",
    "claude",
    "gemini",
    "cohere",
    "mistral",
    "perplexity",
    "groq",
    "together",
)


def default_model(provider: str) -> str:
    return DEFAULT_MODELS.get(provider, "gpt-3.5-turbo")


class Settings(BaseSettings):
    """Centralised, validated configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool = False

    # ── Balancer ─────────────────────────────────────────────
    llm_strategy: StrategyKind = StrategyKind.ROUND_ROBIN
    llm_global_timeout_ms: float = Field(default=30_000, gt=0)
    llm_max_retries: int = Field(default=3, ge=1)
    llm_retry_delay_ms: float = Field(default=1_000, gt=0)
    llm_health_check_timeout_ms: float = Field(default=5_000, gt=0)

    # ── Provider keys ────────────────────────────────────────
    openai_api_key: str = ""
    claude_api_key: str = ""
    gemini_api_key: str = ""
    cohere_api_key: str = ""
    mistral_api_key: str = ""
    perplexity_api_key: str = ""
    groq_api_key: str = ""
    together_api_key: str = ""

    # Ollama needs no key; it is enabled by naming a model
    ollama_model: str = ""
    ollama_base_url: str = "http://localhost:11434"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()

    def api_key_for(self, provider: str) -> str:
        return str(getattr(self, f"{provider}_api_key", "") or "").strip()

    def build_provider_descriptors(self) -> list[ProviderDescriptor]:
        """One descriptor per vendor that has a key (plus Ollama if configured)."""
        descriptors = [
            ProviderDescriptor(
                name=name,
                api_key=self.api_key_for(name),
                model=default_model(name),
            )
            for name in KEYED_PROVIDERS
            if self.api_key_for(name)
        ]
        if self.ollama_model:
            descriptors.append(
                ProviderDescriptor(
                    name="ollama",
                    model=self.ollama_model,
                    base_url=self.ollama_base_url,
                )
            )
        return descriptors

    def to_balancer_config(
        self,
        providers: list[ProviderDescriptor],
        *,
        strategy: StrategyKind | str | None = None,
        custom_strategy: CustomStrategyFn | None = None,
    ) -> BalancerConfig:
        return BalancerConfig(
            strategy=strategy or self.llm_strategy,
            providers=providers,
            custom_strategy=custom_strategy,
            global_timeout_ms=self.llm_global_timeout_ms,
            max_retries=self.llm_max_retries,
            retry_delay_ms=self.llm_retry_delay_ms,
        )


def get_settings(**overrides: Any) -> Settings:
    """Factory that allows test-time overrides."""
    return Settings(**overrides)
