"""Core types for the multi-provider load balancer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Sequence


class StrategyKind(str, enum.Enum):
    """How the balancer picks the provider for the next attempt."""

    ROUND_ROBIN = "round-robin"
    FAILOVER = "failover"
    WEIGHTED = "weighted"
    CUSTOM = "custom"


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static configuration for a single provider.

    Attributes:
        name:        Unique key (e.g. "openai", "claude"); also selects the adapter.
        api_key:     Credential sent to the vendor.
        model:       Target model identifier.
        base_url:    Optional endpoint override.
        weight:      Relative weight (used in WEIGHTED routing).
        timeout_ms:  Per-attempt timeout; falls back to the balancer's global timeout.
        max_retries: Transport-level retries inside the adapter (None = single call).
    """

    name: str
    api_key: str = ""
    model: str = ""
    base_url: str | None = None
    weight: float = 1
    timeout_ms: float | None = None
    max_retries: int | None = None


@dataclass(frozen=True)
class LLMRequest:
    prompt: str
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    stream: bool = False


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LLMResponse:
    content: str
    model: str
    provider: str
    usage: TokenUsage | None = None
    finish_reason: str | None = None


@dataclass
class ProviderStats:
    """Mutable per-provider counters, owned by the balancer's stats tracker."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    last_request_time: datetime | None = None
    is_healthy: bool = True


CustomStrategyFn = Callable[[Sequence[ProviderDescriptor]], ProviderDescriptor]


@dataclass
class BalancerConfig:
    """Configuration surface consumed by ``LLMLoadBalancer``."""

    strategy: StrategyKind | str
    providers: list[ProviderDescriptor] = field(default_factory=list)
    custom_strategy: CustomStrategyFn | None = None
    global_timeout_ms: float = 30_000
    max_retries: int = 3
    retry_delay_ms: float = 1_000
