"""Tests for LLM services and retry handling."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from docpilot.config import DocpilotConfig
from docpilot.generate import GenerationContext, Input
from docpilot.llm import ServiceError, check_response, create_service
from docpilot.llm import retry as retry_module
from docpilot.llm.anthropic import AnthropicService
from docpilot.llm.openai import OpenAIService
from docpilot.llm.retry import RetryableError, call_with_retries


def make_context():
    return GenerationContext(
        Input(b"package a\n", "go", "func:Foo", "a.go"), "Write docs.", "package a\n"
    )


@pytest.fixture
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr(retry_module, "asyncio", SimpleNamespace(sleep=sleep))
    return sleep


class TestCallWithRetries:
    """Tests for call_with_retries."""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, no_sleep):
        """Test transient failures are retried."""
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise RetryableError("busy", 503)
            return "ok"

        assert await call_with_retries(flaky, max_retries=3) == "ok"
        assert len(calls) == 3
        assert no_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_backoff_and_retry_after(self, no_sleep):
        """Test delays grow exponentially and honor Retry-After."""
        async def busy():
            raise RetryableError("busy", 429, retry_after=5.0)

        with pytest.raises(RetryableError):
            await call_with_retries(busy, max_retries=3, base_delay=1.0, max_delay=30.0)

        delays = [c.args[0] for c in no_sleep.await_args_list]
        assert delays == [5.0, 5.0]

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self, no_sleep):
        """Test errors outside retry_on are not retried."""
        calls = []

        async def broken():
            calls.append(1)
            raise ValueError("bad request")

        with pytest.raises(ValueError):
            await call_with_retries(broken, max_retries=3)
        assert len(calls) == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exhausted(self, no_sleep):
        """Test the last error is raised when attempts run out."""
        calls = []

        async def down():
            calls.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            await call_with_retries(down, max_retries=2)
        assert len(calls) == 2


class TestCheckResponse:
    """Tests for check_response."""

    def test_success(self):
        """Test successful responses pass."""
        check_response(httpx.Response(200, json={}), "openai")

    def test_rate_limit_is_retryable(self):
        """Test 429 carries Retry-After."""
        resp = httpx.Response(
            429, headers={"Retry-After": "2"}, json={"error": {"message": "slow down"}}
        )

        with pytest.raises(RetryableError) as exc_info:
            check_response(resp, "openai")
        assert exc_info.value.retry_after == 2.0
        assert "slow down" in str(exc_info.value)

    def test_server_error_is_retryable(self):
        """Test 5xx responses are retryable."""
        with pytest.raises(RetryableError) as exc_info:
            check_response(httpx.Response(502, text="bad gateway"), "anthropic")
        assert exc_info.value.retry_after is None

    def test_client_error(self):
        """Test 4xx responses raise ServiceError."""
        with pytest.raises(ServiceError) as exc_info:
            check_response(httpx.Response(401, json={"error": "nope"}), "openai")
        assert exc_info.value.status_code == 401


class TestOpenAIService:
    """Tests for OpenAIService."""

    @pytest.mark.asyncio
    async def test_generate_doc(self):
        """Test the request payload and response parsing."""
        ctx = make_context()

        def handler(request):
            body = json.loads(request.content)
            assert request.headers["Authorization"] == "Bearer sk-test"
            assert body["model"] == "gpt-4o-mini"
            assert body["messages"][-1]["content"] == ctx.prompt
            return httpx.Response(200, json={"choices": [{"message": {"content": " Foo is a foo. "}}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = OpenAIService("sk-test", "gpt-4o-mini", client=client)
            assert await service.generate_doc(ctx) == "Foo is a foo."

    @pytest.mark.asyncio
    async def test_retries_server_errors(self, no_sleep):
        """Test 5xx responses are retried."""
        statuses = [500, 200]

        def handler(request):
            status = statuses.pop(0)
            if status != 200:
                return httpx.Response(status, text="oops")
            return httpx.Response(200, json={"choices": [{"message": {"content": "Done."}}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = OpenAIService("sk-test", client=client)
            assert await service.generate_doc(make_context()) == "Done."
        assert statuses == []

    @pytest.mark.asyncio
    async def test_empty_completion(self):
        """Test an empty answer is an error."""
        def handler(request):
            return httpx.Response(200, json={"choices": [{"message": {"content": "  "}}]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = OpenAIService("sk-test", client=client)
            with pytest.raises(ServiceError):
                await service.generate_doc(make_context())

    def test_missing_key(self):
        """Test a missing API key is rejected."""
        with pytest.raises(EnvironmentError):
            OpenAIService("")


class TestAnthropicService:
    """Tests for AnthropicService."""

    @pytest.mark.asyncio
    async def test_generate_doc(self):
        """Test headers and text block joining."""
        def handler(request):
            body = json.loads(request.content)
            assert request.headers["x-api-key"] == "sk-ant"
            assert request.headers["anthropic-version"]
            assert body["messages"][0]["content"] == make_context().prompt
            return httpx.Response(
                200,
                json={"content": [{"type": "text", "text": "Foo is "}, {"type": "text", "text": "a foo."}]},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = AnthropicService("sk-ant", client=client)
            assert await service.generate_doc(make_context()) == "Foo is a foo."

    def test_missing_key(self):
        """Test a missing API key is rejected."""
        with pytest.raises(ValueError):
            AnthropicService("")


class TestCreateService:
    """Tests for create_service."""

    def test_providers(self):
        """Test the provider picks the service class."""
        assert isinstance(create_service(DocpilotConfig(api_key="k")), OpenAIService)
        anthropic = create_service(DocpilotConfig(provider="anthropic", api_key="k"))
        assert isinstance(anthropic, AnthropicService)

    def test_unknown_provider(self):
        """Test unknown providers are rejected."""
        with pytest.raises(ValueError):
            create_service(DocpilotConfig(provider="bogus", api_key="k"))

    def test_key_from_provider_variable(self, monkeypatch):
        """Test the service gets the key of the provider it talks to."""
        monkeypatch.delenv("DOCPILOT_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")

        assert create_service(DocpilotConfig(provider="anthropic")).api_key == "sk-ant"
        assert create_service(DocpilotConfig()).api_key == "sk-openai"
