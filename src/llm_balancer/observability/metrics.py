"""Prometheus metrics for the load balancer.

Every series carries a ``balancer`` label (the ``LLMLoadBalancer`` name) so
that several balancers in one process keep separate per-provider series.
Balancers constructed with the same name share them.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram


# ── Provider attempts ────────────────────────────────────────
PROVIDER_REQUESTS_TOTAL = Counter(
    "llm_provider_requests_total",
    "Total provider attempts",
    ["balancer", "provider", "outcome"],  # success / failure
)

PROVIDER_LATENCY = Histogram(
    "llm_provider_latency_seconds",
    "Latency of successful provider attempts",
    ["balancer", "provider"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

PROVIDER_HEALTHY = Gauge(
    "llm_provider_healthy",
    "1 if the provider is currently considered healthy",
    ["balancer", "provider"],
)

# ── Dispatcher ───────────────────────────────────────────────
BALANCER_RETRIES_TOTAL = Counter(
    "llm_balancer_retries_total",
    "Backoff delays taken before a retry",
    ["balancer"],
)

BALANCER_EXHAUSTED_TOTAL = Counter(
    "llm_balancer_exhausted_total",
    "Requests that failed after exhausting every attempt",
    ["balancer"],
)
