"""Balancer exception hierarchy.

All exceptions inherit from ``BalancerError`` so callers can catch the entire
family in one clause while still discriminating on subclass.
"""

from __future__ import annotations

from typing import Sequence


class BalancerError(Exception):
    """Base class for all balancer errors."""

    def __init__(self, message: str, *, code: str = "BALANCER_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# ── Configuration ───────────────────────────────────────────
class ConfigurationError(BalancerError):
    """Invalid strategy, missing custom function, unknown provider, missing keys."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR")


class NoProvidersError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No providers available")


# ── Provider attempts ───────────────────────────────────────
class LLMError(BalancerError):
    """One provider attempt failed or timed out."""

    def __init__(
        self,
        message: str,
        provider: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code="LLM_ERROR")
        self.provider = provider
        self.status_code = status_code
        self.cause = cause

    def __repr__(self) -> str:
        return (
            f"LLMError(provider={self.provider!r}, status_code={self.status_code!r}, "
            f"message={self.message!r})"
        )


class LoadBalancerError(BalancerError):
    """Raised when every retry attempt has been exhausted."""

    def __init__(self, message: str, errors: Sequence[LLMError] = ()) -> None:
        super().__init__(message, code="ALL_PROVIDERS_FAILED")
        self.errors: list[LLMError] = list(errors)
