"""OpenAI-compatible chat completions service.

Any endpoint speaking the OpenAI chat completions format works, including
proxies and local servers; point DOCPILOT_BASE_URL at it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from docpilot.config import DocpilotConfig
from docpilot.config.defaults import (
    DEFAULT_MODEL,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_REQUEST_TIMEOUT_SECONDS,
    LLM_TEMPERATURE,
    OPENAI_API_URL,
)
from docpilot.generate.models import GenerationContext

from . import ServiceError, check_response
from .retry import call_with_retries

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a technical writer documenting source code. You answer with the "
    "documentation text only."
)


class OpenAIService:
    """Generates documentation through a chat completions endpoint."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        url: str = OPENAI_API_URL,
        max_tokens: int = LLM_MAX_OUTPUT_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        client: Optional[httpx.AsyncClient] = None,
        max_retries: int = 3,
    ) -> None:
        if not api_key:
            raise EnvironmentError("OPENAI_API_KEY missing. Set it in .env or environment.")
        self.api_key = api_key
        self.model = model
        self.url = url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.max_retries = max_retries
        self._client = client

    @classmethod
    def from_config(cls, config: DocpilotConfig) -> "OpenAIService":
        return cls(
            config.resolve_api_key(),
            config.model,
            url=config.base_url or OPENAI_API_URL,
            max_tokens=config.max_output_tokens,
            temperature=config.temperature,
        )

    def payload(self, ctx: GenerationContext) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": ctx.prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self._client is not None:
            resp = await self._client.post(self.url, headers=headers, json=payload)
        else:
            async with httpx.AsyncClient(timeout=LLM_REQUEST_TIMEOUT_SECONDS) as client:
                resp = await client.post(self.url, headers=headers, json=payload)
        check_response(resp, self.provider)
        return resp.json()

    async def generate_doc(self, ctx: GenerationContext) -> str:
        data = await call_with_retries(
            self._post,
            self.payload(ctx),
            max_retries=self.max_retries,
            operation=f"{self.provider}:{ctx.identifier}",
        )
        choices = data.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        content = content.strip()
        if not content:
            raise ServiceError(self.provider, 200, f"empty completion for {ctx.identifier}")

        usage = data.get("usage", {})
        logger.debug(
            "%s: %s prompt tokens, %s completion tokens",
            ctx.identifier,
            usage.get("prompt_tokens"),
            usage.get("completion_tokens"),
        )
        return content
