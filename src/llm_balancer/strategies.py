"""Load-balancing strategies that pick one provider for the next attempt.

Strategies only hold policy state (rotation cursor, cumulative weight table).
They read the statistics map but never mutate it, and the balancer rebuilds
them from scratch whenever the provider set changes.
"""

from __future__ import annotations

import abc
import random
import threading
from typing import Mapping, Sequence

import structlog

from llm_balancer.exceptions import ConfigurationError, NoProvidersError
from llm_balancer.types import (
    CustomStrategyFn,
    ProviderDescriptor,
    ProviderStats,
    StrategyKind,
)

logger = structlog.get_logger(__name__)

StatsMap = Mapping[str, ProviderStats]


class LoadBalancingStrategy(abc.ABC):
    """Selects a provider from a non-empty, ordered provider list."""

    def select_provider(
        self,
        providers: Sequence[ProviderDescriptor],
        stats: StatsMap,
    ) -> ProviderDescriptor:
        if not providers:
            raise NoProvidersError()
        return self._select(providers, stats)

    @abc.abstractmethod
    def _select(
        self,
        providers: Sequence[ProviderDescriptor],
        stats: StatsMap,
    ) -> ProviderDescriptor: ...


class RoundRobinStrategy(LoadBalancingStrategy):
    """Cycles through providers in configured order.

    The cursor is a raw index that survives for the strategy's lifetime. If the
    list it is handed shrinks, the stale cursor wraps modulo the new length, so
    the pick after a mutation may be shifted.
    """

    def __init__(self) -> None:
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def cursor(self) -> int:
        return self._cursor

    def _select(
        self,
        providers: Sequence[ProviderDescriptor],
        stats: StatsMap,
    ) -> ProviderDescriptor:
        with self._lock:
            provider = providers[self._cursor % len(providers)]
            self._cursor = (self._cursor + 1) % len(providers)
            return provider


class FailoverStrategy(LoadBalancingStrategy):
    """First healthy provider in order; the first provider if none are healthy."""

    def _select(
        self,
        providers: Sequence[ProviderDescriptor],
        stats: StatsMap,
    ) -> ProviderDescriptor:
        for provider in providers:
            entry = stats.get(provider.name)
            if entry is None or entry.is_healthy:
                return provider

        logger.debug("failover_no_healthy_provider", fallback=providers[0].name)
        return providers[0]


class WeightedStrategy(LoadBalancingStrategy):
    """Random pick proportional to each provider's ``weight``.

    The cumulative table is only rebuilt when the list length changes, so
    swapping one provider for another of the same count keeps the old weights.
    """

    def __init__(
        self,
        providers: Sequence[ProviderDescriptor],
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._cumulative: list[float] = []
        self._total_weight = 0.0
        self._calculate_weights(providers)

    @property
    def total_weight(self) -> float:
        return self._total_weight

    def _calculate_weights(self, providers: Sequence[ProviderDescriptor]) -> None:
        self._cumulative = []
        self._total_weight = 0.0
        for provider in providers:
            self._total_weight += provider.weight or 1
            self._cumulative.append(self._total_weight)

    def _select(
        self,
        providers: Sequence[ProviderDescriptor],
        stats: StatsMap,
    ) -> ProviderDescriptor:
        if len(self._cumulative) != len(providers):
            self._calculate_weights(providers)

        draw = self._rng.random() * self._total_weight
        for idx, bound in enumerate(self._cumulative):
            if draw <= bound:
                return providers[idx]

        return providers[-1]


class CustomStrategy(LoadBalancingStrategy):
    """Delegates to a caller-supplied ``(providers) -> provider`` function."""

    def __init__(self, fn: CustomStrategyFn) -> None:
        self._fn = fn

    def _select(
        self,
        providers: Sequence[ProviderDescriptor],
        stats: StatsMap,
    ) -> ProviderDescriptor:
        return self._fn(providers)


def create_strategy(
    kind: StrategyKind | str,
    providers: Sequence[ProviderDescriptor],
    custom_strategy: CustomStrategyFn | None = None,
) -> LoadBalancingStrategy:
    """Build a fresh strategy instance for ``kind``."""
    try:
        kind = StrategyKind(kind)
    except ValueError:
        raise ConfigurationError(f"Unsupported strategy: {kind}") from None

    if kind == StrategyKind.ROUND_ROBIN:
        return RoundRobinStrategy()
    elif kind == StrategyKind.FAILOVER:
        return FailoverStrategy()
    elif kind == StrategyKind.WEIGHTED:
        return WeightedStrategy(providers)
    else:
        if custom_strategy is None:
            raise ConfigurationError(
                "Custom strategy function is required for custom strategy type"
            )
        return CustomStrategy(custom_strategy)
