"""Generation services backed by hosted LLM APIs."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from docpilot.config import DocpilotConfig

from .retry import RetryableError, call_with_retries

logger = logging.getLogger(__name__)


class ServiceError(RuntimeError):
    """A non-retryable error response from an LLM API."""

    def __init__(self, provider: str, status_code: int, message: str) -> None:
        super().__init__(f"{provider} API {status_code}: {message}")
        self.provider = provider
        self.status_code = status_code


def check_response(resp: httpx.Response, provider: str) -> None:
    """Raise RetryableError or ServiceError for an unsuccessful response."""
    if resp.status_code < 400:
        return
    err_msg = resp.text[:200] if resp.text else str(resp.status_code)
    try:
        body = resp.json()
    except ValueError:
        body = None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        err_msg = error["message"]
    if resp.status_code == 429 or resp.status_code >= 500:
        retry_after: Optional[float]
        try:
            retry_after = float(resp.headers.get("Retry-After", ""))
        except ValueError:
            retry_after = None
        raise RetryableError(f"{provider} API {resp.status_code}: {err_msg}", resp.status_code, retry_after)
    raise ServiceError(provider, resp.status_code, err_msg)


def create_service(config: DocpilotConfig):
    """The generation service configured by config.provider."""
    if config.provider == "anthropic":
        from .anthropic import AnthropicService

        return AnthropicService.from_config(config)
    if config.provider == "openai":
        from .openai import OpenAIService

        return OpenAIService.from_config(config)
    raise ValueError(f"Unknown provider: {config.provider!r} (expected 'openai' or 'anthropic')")


__all__ = [
    "RetryableError",
    "ServiceError",
    "call_with_retries",
    "check_response",
    "create_service",
]
