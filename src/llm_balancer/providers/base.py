"""Provider adapter contract.

Each adapter maps the generic ``LLMRequest`` onto one vendor's REST schema,
performs the HTTP call, and normalises the reply into an ``LLMResponse``.
Failures always surface as ``LLMError`` tagged with the provider name.
"""

from __future__ import annotations

import abc
from typing import Any

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from llm_balancer.exceptions import LLMError
from llm_balancer.types import LLMRequest, LLMResponse, ProviderDescriptor, TokenUsage

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_MS = 30_000

_TRANSIENT_ERRORS = (httpx.NetworkError, httpx.TimeoutException)


class BaseProvider(abc.ABC):
    """One vendor endpoint behind ``make_request``."""

    def __init__(
        self,
        descriptor: ProviderDescriptor,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._descriptor = descriptor
        timeout_s = (descriptor.timeout_ms or DEFAULT_TIMEOUT_MS) / 1000
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    @property
    def descriptor(self) -> ProviderDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    async def make_request(
        self, request: LLMRequest, *, max_retries: int | None = None
    ) -> LLMResponse:
        """Perform one vendor call (plus transport retries if configured).

        ``max_retries`` overrides the descriptor's transport retry count for
        this call; the health check passes 0.
        """
        if max_retries is None:
            max_retries = self._descriptor.max_retries
        attempts = 1 + (max_retries or 0)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_exponential(multiplier=0.5, max=4),
                retry=retry_if_exception_type(_TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.post(
                        self._endpoint(),
                        headers=self._headers(),
                        json=self._payload(request),
                    )
                    response.raise_for_status()
            return self._parse(response.json())
        except LLMError:
            raise
        except Exception as exc:
            raise self._to_llm_error(exc) from exc

    async def close(self) -> None:
        await self._client.aclose()

    # ── Vendor hooks ─────────────────────────────────────────
    @abc.abstractmethod
    def _endpoint(self) -> str: ...

    @abc.abstractmethod
    def _payload(self, request: LLMRequest) -> dict[str, Any]: ...

    @abc.abstractmethod
    def _parse(self, data: dict[str, Any]) -> LLMResponse: ...

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _response(
        self,
        content: str,
        *,
        usage: TokenUsage | None = None,
        finish_reason: str | None = None,
    ) -> LLMResponse:
        return LLMResponse(
            content=content,
            model=self._descriptor.model,
            provider=self._descriptor.name,
            usage=usage,
            finish_reason=finish_reason,
        )

    # ── Error normalisation ──────────────────────────────────
    def _to_llm_error(self, exc: Exception) -> LLMError:
        status_code: int | None = None
        message = str(exc) or type(exc).__name__

        if isinstance(exc, httpx.HTTPStatusError):
            status_code = exc.response.status_code
            # str(exc) embeds the request URL, which may carry credentials
            message = _error_message(exc.response) or f"HTTP {status_code}"
        elif isinstance(exc, (KeyError, IndexError, TypeError)):
            message = f"Unexpected response shape: {type(exc).__name__}: {exc}"

        logger.debug(
            "provider_call_failed",
            provider=self.name,
            status_code=status_code,
            error=message,
        )
        return LLMError(message, self.name, status_code=status_code, cause=exc)


def _error_message(response: httpx.Response) -> str | None:
    """Pull ``error.message`` or ``message`` out of a vendor error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None

    error = body.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(body.get("message"), str):
        return body["message"]
    return None
