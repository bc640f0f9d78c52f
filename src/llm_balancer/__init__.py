"""Multi-provider LLM load balancer.

Routes text-generation requests across vendor APIs with pluggable routing
strategies, per-attempt timeouts, exponential-backoff retries, and
per-provider health statistics.
"""

from __future__ import annotations

from llm_balancer.balancer import LLMLoadBalancer
from llm_balancer.config import DEFAULT_MODELS, Settings, default_model, get_settings
from llm_balancer.exceptions import (
    BalancerError,
    ConfigurationError,
    LLMError,
    LoadBalancerError,
    NoProvidersError,
)
from llm_balancer.observability import configure_logging
from llm_balancer.providers import BaseProvider, create_provider
from llm_balancer.strategies import (
    CustomStrategy,
    FailoverStrategy,
    LoadBalancingStrategy,
    RoundRobinStrategy,
    WeightedStrategy,
    create_strategy,
)
from llm_balancer.types import (
    BalancerConfig,
    CustomStrategyFn,
    LLMRequest,
    LLMResponse,
    ProviderDescriptor,
    ProviderStats,
    StrategyKind,
    TokenUsage,
)


def create_balancer(config: BalancerConfig) -> LLMLoadBalancer:
    return LLMLoadBalancer(config)


def create_auto_balancer(
    strategy: StrategyKind | str | None = None,
    custom_strategy: CustomStrategyFn | None = None,
    *,
    settings: Settings | None = None,
) -> LLMLoadBalancer:
    """Build a balancer over every provider with a key in the environment.

    ``strategy`` defaults to ``LLM_STRATEGY`` (round-robin unless set).
    """
    settings = settings or get_settings()
    providers = settings.build_provider_descriptors()
    if not providers:
        raise ConfigurationError("No provider API keys found in environment variables")

    return LLMLoadBalancer(
        settings.to_balancer_config(
            providers, strategy=strategy, custom_strategy=custom_strategy
        ),
        health_check_timeout_ms=settings.llm_health_check_timeout_ms,
    )


async def single_model_request(
    provider: str,
    request: LLMRequest,
    model: str | None = None,
    *,
    settings: Settings | None = None,
) -> LLMResponse:
    """Call one vendor directly, keyed from ``<PROVIDER>_API_KEY``."""
    settings = settings or get_settings()
    api_key = settings.api_key_for(provider)
    if not api_key:
        raise ConfigurationError(
            f"Missing {provider.upper()}_API_KEY environment variable"
        )

    descriptor = ProviderDescriptor(
        name=provider,
        api_key=api_key,
        model=model or default_model(provider),
    )
    config = settings.to_balancer_config([descriptor], strategy=StrategyKind.FAILOVER)
    async with LLMLoadBalancer(config) as balancer:
        return await balancer.request(request)


__all__ = [
    "BalancerConfig",
    "BalancerError",
    "BaseProvider",
    "ConfigurationError",
    "CustomStrategy",
    "CustomStrategyFn",
    "DEFAULT_MODELS",
    "FailoverStrategy",
    "LLMError",
    "LLMLoadBalancer",
    "LLMRequest",
    "LLMResponse",
    "LoadBalancerError",
    "LoadBalancingStrategy",
    "NoProvidersError",
    "ProviderDescriptor",
    "ProviderStats",
    "RoundRobinStrategy",
    "Settings",
    "StrategyKind",
    "TokenUsage",
    "WeightedStrategy",
    "configure_logging",
    "create_auto_balancer",
    "create_balancer",
    "create_provider",
    "create_strategy",
    "get_settings",
    "single_model_request",
]
