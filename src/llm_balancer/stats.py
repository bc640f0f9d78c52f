"""Per-provider statistics tracker.

Keeps cumulative attempt counters, an incremental mean of successful-attempt
latency, and a health flag derived from the success ratio. Entries live
exactly as long as their provider is registered with the balancer.
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime, timezone

import structlog

from llm_balancer.observability.metrics import (
    PROVIDER_HEALTHY,
    PROVIDER_LATENCY,
    PROVIDER_REQUESTS_TOTAL,
)
from llm_balancer.types import ProviderStats

logger = structlog.get_logger(__name__)

HEALTHY_SUCCESS_RATIO = 0.5


class StatsTracker:
    """Thread-safe map of provider name → ``ProviderStats``.

    ``balancer`` labels the exported metrics.
    """

    def __init__(self, balancer: str = "default") -> None:
        self._balancer = balancer
        self._stats: dict[str, ProviderStats] = {}
        self._lock = threading.Lock()

    # ── Membership ───────────────────────────────────────────
    def register(self, name: str) -> None:
        with self._lock:
            self._stats[name] = ProviderStats()
        self._set_health_gauge(name, True)

    def unregister(self, name: str) -> None:
        with self._lock:
            self._stats.pop(name, None)
        try:
            PROVIDER_HEALTHY.remove(self._balancer, name)
        except KeyError:
            pass

    def __contains__(self, name: object) -> bool:
        return name in self._stats

    # ── Recording ────────────────────────────────────────────
    def record_attempt(self, name: str, success: bool, elapsed_ms: float) -> None:
        """Fold one attempt outcome into ``name``'s entry.

        Unknown names are ignored: a provider removed while a request was in
        flight must not resurrect its entry.
        """
        with self._lock:
            stats = self._stats.get(name)
            if stats is None:
                logger.debug("stats_update_for_unknown_provider", provider=name)
                return

            stats.total_requests += 1
            stats.last_request_time = datetime.now(timezone.utc)

            if success:
                stats.successful_requests += 1
                n = stats.successful_requests
                stats.average_response_time_ms = (
                    stats.average_response_time_ms * (n - 1) + elapsed_ms
                ) / n
            else:
                stats.failed_requests += 1

            stats.is_healthy = (
                stats.successful_requests / stats.total_requests > HEALTHY_SUCCESS_RATIO
            )
            healthy = stats.is_healthy

        outcome = "success" if success else "failure"
        PROVIDER_REQUESTS_TOTAL.labels(
            balancer=self._balancer, provider=name, outcome=outcome
        ).inc()
        if success:
            PROVIDER_LATENCY.labels(balancer=self._balancer, provider=name).observe(
                elapsed_ms / 1000
            )
        self._set_health_gauge(name, healthy)

    def mark_health(self, name: str, healthy: bool) -> None:
        """Overwrite the health flag directly (used by the active health sweep)."""
        with self._lock:
            stats = self._stats.get(name)
            if stats is None:
                return
            stats.is_healthy = healthy
        self._set_health_gauge(name, healthy)

    # ── Observation ──────────────────────────────────────────
    def get(self, name: str) -> ProviderStats | None:
        with self._lock:
            stats = self._stats.get(name)
            return copy.copy(stats) if stats is not None else None

    def snapshot(self) -> dict[str, ProviderStats]:
        """Copy of every entry."""
        with self._lock:
            return {name: copy.copy(stats) for name, stats in self._stats.items()}

    def _set_health_gauge(self, name: str, healthy: bool) -> None:
        PROVIDER_HEALTHY.labels(balancer=self._balancer, provider=name).set(
            1 if healthy else 0
        )
