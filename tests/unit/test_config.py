"""Tests for environment-driven configuration and the convenience factories."""

from __future__ import annotations

import json
import logging

import httpx
import pytest
import structlog

from llm_balancer import (
    ConfigurationError,
    LLMLoadBalancer,
    LLMRequest,
    StrategyKind,
    configure_logging,
    create_auto_balancer,
    single_model_request,
)
from llm_balancer.config import KEYED_PROVIDERS, Settings, default_model, get_settings
from llm_balancer.providers import PROVIDER_CLASSES, OpenAIProvider
from llm_balancer.strategies import FailoverStrategy, WeightedStrategy


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in KEYED_PROVIDERS:
        monkeypatch.delenv(f"{name.upper()}_API_KEY", raising=False)
    for var in (
        "OLLAMA_MODEL",
        "OLLAMA_BASE_URL",
        "LLM_STRATEGY",
        "LLM_MAX_RETRIES",
        "LLM_RETRY_DELAY_MS",
        "LOG_LEVEL",
        "LOG_JSON",
    ):
        monkeypatch.delenv(var, raising=False)


def _settings(**overrides) -> Settings:
    return get_settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self) -> None:
        settings = _settings()
        assert settings.llm_strategy is StrategyKind.ROUND_ROBIN
        assert settings.llm_max_retries == 3
        assert settings.llm_retry_delay_ms == 1_000
        assert settings.build_provider_descriptors() == []

    def test_reads_keys_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CLAUDE_API_KEY", "ck")
        monkeypatch.setenv("OPENAI_API_KEY", "ok")
        monkeypatch.setenv("GROQ_API_KEY", "   ")

        descriptors = _settings().build_provider_descriptors()

        # Fixed discovery order; blank keys are skipped
        assert [d.name for d in descriptors] == ["openai", "claude"]
        assert descriptors[0].api_key == "ok"
        assert descriptors[0].model == "gpt-3.5-turbo"
        assert descriptors[1].model == "claude-3-haiku"

    def test_ollama_enabled_by_model(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OLLAMA_MODEL", "mistral")
        monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")

        (descriptor,) = _settings().build_provider_descriptors()

        assert descriptor.name == "ollama"
        assert descriptor.model == "mistral"
        assert descriptor.base_url == "http://gpu-box:11434"
        assert descriptor.api_key == ""

    def test_balancer_settings_from_environment(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LLM_STRATEGY", "weighted")
        monkeypatch.setenv("LLM_MAX_RETRIES", "5")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = _settings()
        config = settings.to_balancer_config([])

        assert settings.log_level == "DEBUG"
        assert config.strategy is StrategyKind.WEIGHTED
        assert config.max_retries == 5

    def test_invalid_retry_count_rejected(self) -> None:
        with pytest.raises(ValueError):
            _settings(llm_max_retries=0)

    def test_zero_retry_delay_rejected(self) -> None:
        # The balancer would silently replace 0 with its 1000 ms default
        with pytest.raises(ValueError):
            _settings(llm_retry_delay_ms=0)

    def test_default_model_fallback(self) -> None:
        assert default_model("mistral") == "mistral-small"
        assert default_model("acme") == "gpt-3.5-turbo"


class TestCreateAutoBalancer:
    def test_requires_at_least_one_key(self) -> None:
        with pytest.raises(ConfigurationError, match="No provider API keys found"):
            create_auto_balancer(settings=_settings())

    async def test_builds_from_keys(self) -> None:
        settings = _settings(openai_api_key="ok", gemini_api_key="gk")
        balancer = create_auto_balancer(StrategyKind.FAILOVER, settings=settings)

        async with balancer:
            assert [p.name for p in balancer.providers] == ["openai", "gemini"]
            assert isinstance(balancer.strategy, FailoverStrategy)
            assert set(balancer.get_stats()) == {"openai", "gemini"}

    async def test_strategy_defaults_to_settings(self) -> None:
        settings = _settings(openai_api_key="ok", llm_strategy="weighted")
        async with create_auto_balancer(settings=settings) as balancer:
            assert isinstance(balancer.strategy, WeightedStrategy)


class TestSingleModelRequest:
    async def test_missing_key(self) -> None:
        with pytest.raises(ConfigurationError, match="Missing OPENAI_API_KEY"):
            await single_model_request(
                "openai", LLMRequest(prompt="hi"), settings=_settings()
            )

    async def test_routes_to_named_vendor(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"choices": [{"message": {"content": "direct"}}]}
            )

        class MockedOpenAI(OpenAIProvider):
            def __init__(self, descriptor, **kwargs) -> None:
                client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
                super().__init__(descriptor, client=client)

        monkeypatch.setitem(PROVIDER_CLASSES, "openai", MockedOpenAI)

        response = await single_model_request(
            "openai",
            LLMRequest(prompt="hi"),
            model="gpt-4o-mini",
            settings=_settings(openai_api_key="ok"),
        )

        assert response.content == "direct"
        assert response.provider == "openai"
        assert response.model == "gpt-4o-mini"
        assert seen[0].headers["Authorization"] == "Bearer ok"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _reset_structlog(self):
        yield
        structlog.reset_defaults()

    @pytest.mark.parametrize("json_logs", [False, True])
    def test_emits_structured_events(
        self, json_logs: bool, capsys: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(log_level="info", json_logs=json_logs)
        structlog.get_logger("test").info("balancer_event", provider="openai")

        out = capsys.readouterr().out
        assert "balancer_event" in out
        assert "openai" in out

    def test_level_filters_lower_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="warning")
        structlog.get_logger("test").info("hidden_event")
        assert "hidden_event" not in capsys.readouterr().out
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_reads_level_and_format_from_environment(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LOG_JSON", "true")

        configure_logging()
        structlog.get_logger("test").debug("debug_event", provider="openai")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        assert json.loads(line)["event"] == "debug_event"

    def test_explicit_arguments_win_over_environment(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        configure_logging(log_level="error")
        structlog.get_logger("test").info("quiet_event")

        assert "quiet_event" not in capsys.readouterr().out


def test_create_balancer_is_plain_constructor() -> None:
    from llm_balancer import BalancerConfig, create_balancer

    balancer = create_balancer(BalancerConfig(strategy="round-robin"))
    assert isinstance(balancer, LLMLoadBalancer)
    assert balancer.providers == []
