"""LLM load balancer: the main entry-point for text-generation requests.

Owns the provider adapters, the statistics tracker and the routing strategy.
Each ``request`` runs a bounded retry loop: the strategy picks a provider per
attempt, the call is raced against a timeout, statistics are updated after
every attempt, and failed attempts back off exponentially before the next try.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import structlog

from llm_balancer.exceptions import (
    ConfigurationError,
    LLMError,
    LoadBalancerError,
    NoProvidersError,
)
from llm_balancer.observability.metrics import (
    BALANCER_EXHAUSTED_TOTAL,
    BALANCER_RETRIES_TOTAL,
)
from llm_balancer.providers import BaseProvider, create_provider
from llm_balancer.stats import StatsTracker
from llm_balancer.strategies import LoadBalancingStrategy, create_strategy
from llm_balancer.types import (
    BalancerConfig,
    LLMRequest,
    LLMResponse,
    ProviderDescriptor,
    ProviderStats,
)

logger = structlog.get_logger(__name__)

UNKNOWN_PROVIDER = "unknown"

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1_000
HEALTH_CHECK_TIMEOUT_MS = 5_000

HEALTH_CHECK_REQUEST = LLMRequest(prompt="Health check", max_tokens=1)

ProviderFactory = Callable[[ProviderDescriptor], BaseProvider]


class LLMLoadBalancer:
    """Routes requests across providers with retry, backoff and health tracking.

    Usage::

        balancer = LLMLoadBalancer(BalancerConfig(
            strategy="failover",
            providers=[ProviderDescriptor(name="openai", api_key="...", model="gpt-4o")],
        ))
        response = await balancer.request(LLMRequest(prompt="Hello"))

    ``name`` labels this balancer's metrics; give each instance in a process
    its own name to keep their series apart. ``provider_factory`` turns a
    descriptor into an adapter; it defaults to the built-in vendor registry and
    can be swapped for tests or custom vendors.
    """

    def __init__(
        self,
        config: BalancerConfig,
        *,
        name: str = "default",
        provider_factory: ProviderFactory = create_provider,
        health_check_timeout_ms: float = HEALTH_CHECK_TIMEOUT_MS,
    ) -> None:
        self._name = name
        self._config = config
        self._provider_factory = provider_factory
        self._health_check_timeout_ms = health_check_timeout_ms

        self._providers: list[ProviderDescriptor] = []
        self._adapters: dict[str, BaseProvider] = {}
        self._retired: list[BaseProvider] = []
        self._stats = StatsTracker(name)

        for descriptor in config.providers:
            if descriptor.name in self._adapters:
                raise ConfigurationError(f"Duplicate provider name: {descriptor.name}")
            self._adapters[descriptor.name] = provider_factory(descriptor)
            self._providers.append(descriptor)
            self._stats.register(descriptor.name)

        self._strategy = self._build_strategy()
        logger.info(
            "load_balancer_initialized",
            balancer=name,
            strategy=str(config.strategy),
            providers=[p.name for p in self._providers],
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def providers(self) -> list[ProviderDescriptor]:
        return list(self._providers)

    @property
    def strategy(self) -> LoadBalancingStrategy:
        return self._strategy

    # ── Main entry-point ─────────────────────────────────────
    async def request(self, request: LLMRequest) -> LLMResponse:
        """Send ``request`` to a provider chosen by the strategy.

        Returns:
            The first successful response.

        Raises:
            NoProvidersError: If no providers are configured.
            LoadBalancerError: If every attempt fails; ``errors`` lists each
                attempt's ``LLMError`` in order.
        """
        if not self._providers:
            raise NoProvidersError()

        errors: list[LLMError] = []
        max_retries = self._config.max_retries or DEFAULT_MAX_RETRIES
        retry_delay_ms = self._config.retry_delay_ms or DEFAULT_RETRY_DELAY_MS

        for attempt in range(max_retries):
            log = logger.bind(attempt=attempt + 1, max_attempts=max_retries)
            try:
                return await self._attempt(request, log)
            except LLMError as exc:
                errors.append(exc)
                if exc.provider != UNKNOWN_PROVIDER:
                    self._stats.record_attempt(exc.provider, False, 0)
                log.warning(
                    "provider_request_failed",
                    provider=exc.provider,
                    status_code=exc.status_code,
                    error=exc.message,
                )

            if attempt < max_retries - 1:
                delay_ms = retry_delay_ms * (2 ** attempt)
                BALANCER_RETRIES_TOTAL.labels(balancer=self._name).inc()
                log.info("retry_backoff", delay_ms=delay_ms)
                await self._delay(delay_ms)

        BALANCER_EXHAUSTED_TOTAL.labels(balancer=self._name).inc()
        logger.error(
            "all_attempts_exhausted",
            attempts=max_retries,
            providers=[e.provider for e in errors],
        )
        raise LoadBalancerError(
            f"All providers failed after {max_retries} attempts", errors
        )

    async def _attempt(
        self, request: LLMRequest, log: structlog.typing.FilteringBoundLogger
    ) -> LLMResponse:
        """One select → call → record cycle. Every failure surfaces as ``LLMError``."""
        try:
            selected = self._strategy.select_provider(
                self._providers, self._stats.snapshot()
            )
        except Exception as exc:
            raise LLMError(
                f"Provider selection failed: {exc}", UNKNOWN_PROVIDER, cause=exc
            ) from exc

        provider = self._adapters.get(selected.name)
        if provider is None:
            raise LLMError(f"Provider {selected.name} not found", UNKNOWN_PROVIDER)

        start = time.monotonic()
        try:
            response = await self._make_request_with_timeout(provider, selected, request)
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(
                f"{type(exc).__name__}: {exc}", selected.name, cause=exc
            ) from exc

        latency_ms = (time.monotonic() - start) * 1000
        self._stats.record_attempt(selected.name, True, latency_ms)
        log.info(
            "provider_request_success",
            provider=selected.name,
            latency_ms=float(f"{latency_ms:.1f}"),
        )
        return response

    async def _make_request_with_timeout(
        self,
        provider: BaseProvider,
        descriptor: ProviderDescriptor,
        request: LLMRequest,
        *,
        timeout_ms: float | None = None,
        max_retries: int | None = None,
    ) -> LLMResponse:
        call_kwargs = {} if max_retries is None else {"max_retries": max_retries}
        timeout_ms = (
            timeout_ms
            or descriptor.timeout_ms
            or self._config.global_timeout_ms
            or DEFAULT_TIMEOUT_MS
        )
        try:
            return await asyncio.wait_for(
                provider.make_request(request, **call_kwargs), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError as exc:
            raise LLMError(
                f"Request timeout after {timeout_ms:g}ms", descriptor.name
            ) from exc

    async def _delay(self, delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000)

    # ── Health observation ───────────────────────────────────
    def get_stats(self) -> dict[str, ProviderStats]:
        return self._stats.snapshot()

    def get_healthy_providers(self) -> list[ProviderDescriptor]:
        stats = self._stats.snapshot()
        return [
            p for p in self._providers
            if p.name not in stats or stats[p.name].is_healthy
        ]

    async def health_check(self) -> dict[str, bool]:
        """Probe every provider once, concurrently, and record the outcome.

        Probes bypass the strategy and the retry loop. A failing probe only
        marks its own provider unhealthy; the sweep always waits for all of them.
        """
        providers = list(self._providers)

        async def _probe(descriptor: ProviderDescriptor) -> bool:
            provider = self._adapters.get(descriptor.name)
            healthy = False
            if provider is not None:
                try:
                    await self._make_request_with_timeout(
                        provider,
                        descriptor,
                        HEALTH_CHECK_REQUEST,
                        timeout_ms=self._health_check_timeout_ms,
                        max_retries=0,
                    )
                    healthy = True
                except Exception as exc:
                    logger.warning(
                        "health_probe_failed", provider=descriptor.name, error=str(exc)
                    )
            self._stats.mark_health(descriptor.name, healthy)
            return healthy

        results = await asyncio.gather(*(_probe(p) for p in providers))
        status = {p.name: healthy for p, healthy in zip(providers, results)}
        logger.info(
            "health_check_complete",
            healthy=[name for name, ok in status.items() if ok],
            unhealthy=[name for name, ok in status.items() if not ok],
        )
        return status

    # ── Dynamic membership ───────────────────────────────────
    def add_provider(self, descriptor: ProviderDescriptor) -> None:
        if descriptor.name in self._adapters:
            raise ConfigurationError(f"Duplicate provider name: {descriptor.name}")

        self._adapters[descriptor.name] = self._provider_factory(descriptor)
        self._providers.append(descriptor)
        self._stats.register(descriptor.name)
        self._strategy = self._build_strategy()
        logger.info("provider_added", provider=descriptor.name)

    def remove_provider(self, name: str) -> None:
        adapter = self._adapters.pop(name, None)
        if adapter is not None:
            self._retired.append(adapter)
        self._providers = [p for p in self._providers if p.name != name]
        self._stats.unregister(name)
        self._strategy = self._build_strategy()
        logger.info("provider_removed", provider=name, found=adapter is not None)

    def _build_strategy(self) -> LoadBalancingStrategy:
        # Fresh instance on every membership change; cached cursor/weights are discarded
        return create_strategy(
            self._config.strategy, self._providers, self._config.custom_strategy
        )

    # ── Lifecycle ────────────────────────────────────────────
    async def aclose(self) -> None:
        adapters = [*self._adapters.values(), *self._retired]
        self._retired.clear()
        for adapter in adapters:
            await adapter.close()

    async def __aenter__(self) -> LLMLoadBalancer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
