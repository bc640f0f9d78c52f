"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest

from llm_balancer.types import (
    BalancerConfig,
    LLMRequest,
    LLMResponse,
    ProviderDescriptor,
)


@dataclass
class Slow:
    """Scripted outcome: respond with ``content`` after ``seconds``."""

    seconds: float
    content: str = "slow"


class FakeProvider:
    """In-memory adapter that plays back a script of outcomes.

    Each entry is a response string, an exception to raise, or a ``Slow``.
    Once the script is exhausted every call succeeds with ``ok:<name>``.
    """

    def __init__(self, descriptor: ProviderDescriptor, script: list[Any]) -> None:
        self.descriptor = descriptor
        self.name = descriptor.name
        self.requests: list[LLMRequest] = []
        self.retry_overrides: list[int | None] = []
        self.closed = False
        self._script = script

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def make_request(
        self, request: LLMRequest, *, max_retries: int | None = None
    ) -> LLMResponse:
        self.requests.append(request)
        self.retry_overrides.append(max_retries)
        outcome = self._script.pop(0) if self._script else f"ok:{self.name}"

        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, Slow):
            await asyncio.sleep(outcome.seconds)
            outcome = outcome.content
        return LLMResponse(
            content=outcome,
            model=self.descriptor.model,
            provider=self.name,
        )

    async def close(self) -> None:
        self.closed = True


class FakeProviderFactory:
    """``provider_factory`` for ``LLMLoadBalancer`` that records what it built."""

    def __init__(self) -> None:
        self.providers: dict[str, FakeProvider] = {}
        self._scripts: dict[str, list[Any]] = {}

    def script(self, name: str, *outcomes: Any) -> None:
        self._scripts.setdefault(name, []).extend(outcomes)

    def __call__(self, descriptor: ProviderDescriptor) -> FakeProvider:
        provider = FakeProvider(descriptor, self._scripts.setdefault(descriptor.name, []))
        self.providers[descriptor.name] = provider
        return provider


@pytest.fixture
def descriptors() -> list[ProviderDescriptor]:
    return [
        ProviderDescriptor(name="openai", api_key="key-1", model="gpt-3.5-turbo"),
        ProviderDescriptor(name="claude", api_key="key-2", model="claude-3-haiku"),
        ProviderDescriptor(name="gemini", api_key="key-3", model="gemini-pro"),
    ]


@pytest.fixture
def factory() -> FakeProviderFactory:
    return FakeProviderFactory()


@pytest.fixture
def make_config(descriptors: list[ProviderDescriptor]):
    def _make(strategy: str = "round-robin", **kwargs: Any) -> BalancerConfig:
        kwargs.setdefault("providers", list(descriptors))
        kwargs.setdefault("retry_delay_ms", 10)
        return BalancerConfig(strategy=strategy, **kwargs)

    return _make
