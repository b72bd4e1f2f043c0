"""
Anthropic Claude service for docpilot.

Talks to the Anthropic Messages API directly over httpx.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from docpilot.config import DocpilotConfig
from docpilot.config.defaults import (
    ANTHROPIC_API_URL,
    ANTHROPIC_API_VERSION,
    DEFAULT_ANTHROPIC_MODEL,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_REQUEST_TIMEOUT_SECONDS,
    LLM_TEMPERATURE,
)
from docpilot.generate.models import GenerationContext

from . import ServiceError, check_response
from .openai import SYSTEM_PROMPT
from .retry import call_with_retries

logger = logging.getLogger(__name__)


class AnthropicService:
    """Generates documentation with Claude models."""

    provider = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_ANTHROPIC_MODEL,
        *,
        url: str = ANTHROPIC_API_URL,
        max_tokens: int = LLM_MAX_OUTPUT_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
    ) -> None:
        if not api_key:
            raise ValueError(
                "Anthropic API key not found. Set ANTHROPIC_API_KEY environment variable."
            )
        self.api_key = api_key
        self.model = model
        self.url = url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self._client = client

    @classmethod
    def from_config(cls, config: DocpilotConfig) -> "AnthropicService":
        return cls(
            config.resolve_api_key(),
            config.model,
            url=config.base_url or ANTHROPIC_API_URL,
            max_tokens=config.max_output_tokens,
            temperature=config.temperature,
        )

    def payload(self, ctx: GenerationContext) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": ctx.prompt}],
        }

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }
        if self._client is not None:
            resp = await self._client.post(self.url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=LLM_REQUEST_TIMEOUT_SECONDS) as client:
                resp = await client.post(self.url, json=payload, headers=headers)
        check_response(resp, self.provider)
        return resp.json()

    async def generate_doc(self, ctx: GenerationContext) -> str:
        data = await call_with_retries(
            self._post,
            self.payload(ctx),
            max_retries=self.max_retries,
            operation=f"{self.provider}:{ctx.identifier}",
        )
        text = "".join(
            block.get("text", "") for block in data.get("content") or [] if block.get("type") == "text"
        ).strip()
        if not text:
            raise ServiceError(self.provider, 200, f"Empty response from Anthropic: {data}")
        return text
