"""
Unit tests for the ResilientLLMClient.

Tests cover:
- Admission control (local rate limiting, no network call on denial)
- Message construction and sanitization
- Request parameters passed to LiteLLM
- Exponential backoff on HTTP 429 with a recorded sleep
- Error taxonomy: every transport failure maps to exactly one ErrorKind
- Response parsing, including the reasoning channel
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from litellm.exceptions import (
    APIConnectionError,
    AuthenticationError,
    InternalServerError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)

from mentor.config.settings import LLMSettings
from mentor.llm.client import DEFAULT_SYSTEM_PROMPT, ResilientLLMClient, classify_error
from mentor.llm.models import ChatMessage, ErrorKind, LLMResult
from mentor.llm.rate_limiter import TokenBucket


# ---------------------------------------------------------------------------
# Helpers for building mock LiteLLM responses and errors
# ---------------------------------------------------------------------------

PROVIDER = {"llm_provider": "deepseek", "model": "deepseek-reasoner"}


def _make_text_response(text: str, reasoning: str | None = None) -> MagicMock:
    """Build a mock LiteLLM response with a single text choice."""
    choice = MagicMock()
    choice.message.content = text
    choice.message.reasoning_content = reasoning

    response = MagicMock()
    response.choices = [choice]
    response.model = "deepseek/deepseek-reasoner"
    return response


def _rate_limit_error() -> RateLimitError:
    return RateLimitError(message="429 Too Many Requests", **PROVIDER)


def _delays(sleep: AsyncMock) -> list[float]:
    return [call.args[0] for call in sleep.call_args_list]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    return LLMSettings(
        model="deepseek/deepseek-reasoner",
        api_key="test-api-key",
        base_url="https://api.deepseek.com",
        max_tokens=4096,
        timeout=30.0,
        max_retries=3,
        retry_base_delay=1.0,
    )


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def client(settings, sleep):
    return ResilientLLMClient(settings, rate_limiter=TokenBucket(capacity=50, refill_rate=10), sleep=sleep)


# ---------------------------------------------------------------------------
# Test Classes
# ---------------------------------------------------------------------------

class TestAdmission:

    @pytest.mark.asyncio
    async def test_second_call_rejected_without_network(self, settings, sleep):
        """Capacity 1, no refill: one call goes out, the next is rejected locally."""
        client = ResilientLLMClient(
            settings, rate_limiter=TokenBucket(capacity=1, refill_rate=0), sleep=sleep
        )

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("first")
            first = await client.make_api_call("hello")
            second = await client.make_api_call("hello again")

        assert first.is_error is False
        assert first.text == "first"
        assert second.is_error is True
        assert second.error_kind is ErrorKind.RATE_LIMITED
        assert second.error_message.startswith("Rate limit exceeded")
        assert mock_call.await_count == 1

    def test_check_rate_limit_does_not_consume(self, settings):
        bucket = TokenBucket(capacity=1, refill_rate=0)
        client = ResilientLLMClient(settings, rate_limiter=bucket)

        assert client.check_rate_limit() is True
        assert client.check_rate_limit() is True
        assert bucket.tokens == 1

    def test_check_rate_limit_false_when_empty(self, settings):
        bucket = TokenBucket(capacity=1, refill_rate=0)
        bucket.try_consume()
        client = ResilientLLMClient(settings, rate_limiter=bucket)

        assert client.check_rate_limit() is False

    def test_default_rate_limiter(self, settings):
        client = ResilientLLMClient(settings)
        assert client.rate_limiter.capacity == 50
        assert client.rate_limiter.refill_rate == 10

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_without_network(self, sleep):
        client = ResilientLLMClient(LLMSettings(api_key=""), sleep=sleep)

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            result = await client.make_api_call("hello")

        assert result.error_kind is ErrorKind.AUTHENTICATION_FAILED
        assert "API key not configured" in result.error_message
        mock_call.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "turn",
        [
            {"role": "tool", "content": "x"},
            {"role": "user", "content": None},
            {"content": "no role"},
        ],
    )
    async def test_invalid_history_reported_without_spending_token(self, settings, sleep, turn):
        bucket = TokenBucket(capacity=5, refill_rate=0)
        client = ResilientLLMClient(settings, rate_limiter=bucket, sleep=sleep)

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            result = await client.make_api_call("hi", "sys", [turn])

        assert result.is_error is True
        assert result.error_kind is ErrorKind.UNKNOWN
        assert result.error_message == "Invalid conversation history"
        assert bucket.tokens == 5
        mock_call.assert_not_awaited()


class TestRequestComposition:

    @pytest.mark.asyncio
    async def test_messages_order_and_sanitization(self, client):
        history = [
            ChatMessage(role="user", content="earlier question"),
            {"role": "assistant", "content": "earlier answer", "reasoning_content": "hidden"},
        ]

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("ok")
            await client.make_api_call("  explain {x} ```  ", "Be {terse}", history)

        messages = mock_call.call_args.kwargs["messages"]
        assert messages == [
            {"role": "system", "content": "Be \\{terse\\}"},
            {"role": "user", "content": "earlier question"},
            {"role": "assistant", "content": "earlier answer"},
            {"role": "user", "content": "explain \\{x\\} \\`\\`\\`"},
        ]

    @pytest.mark.asyncio
    async def test_already_sanitized_prompt_not_double_escaped(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("ok")
            await client.make_api_call("value: \\{x\\}")

        user_message = mock_call.call_args.kwargs["messages"][-1]
        assert user_message["content"] == "value: \\{x\\}"

    @pytest.mark.asyncio
    async def test_default_system_prompt(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("ok")
            await client.make_api_call("hi")

        system_message = mock_call.call_args.kwargs["messages"][0]
        assert system_message == {"role": "system", "content": DEFAULT_SYSTEM_PROMPT}

    @pytest.mark.asyncio
    async def test_passes_settings_to_litellm(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("ok")
            await client.make_api_call("hi")

        kwargs = mock_call.call_args.kwargs
        assert kwargs["model"] == "deepseek/deepseek-reasoner"
        assert kwargs["api_key"] == "test-api-key"
        assert kwargs["api_base"] == "https://api.deepseek.com"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["timeout"] == 30.0
        # SDK-level retries disabled; the client's own policy applies
        assert kwargs["max_retries"] == 0
        assert "extra_headers" not in kwargs

    @pytest.mark.asyncio
    async def test_extra_headers_and_no_base_url(self, sleep):
        settings = LLMSettings(
            api_key="k",
            base_url=None,
            extra_headers={"X-Title": "Mentor MCP Server"},
        )
        client = ResilientLLMClient(settings, sleep=sleep)

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("ok")
            await client.make_api_call("hi")

        kwargs = mock_call.call_args.kwargs
        assert "api_base" not in kwargs
        assert kwargs["extra_headers"] == {"X-Title": "Mentor MCP Server"}


class TestBackoff:

    @pytest.mark.asyncio
    async def test_three_429s_then_success(self, settings, sleep):
        settings.max_retries = 4
        client = ResilientLLMClient(settings, sleep=sleep)

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = [
                _rate_limit_error(),
                _rate_limit_error(),
                _rate_limit_error(),
                _make_text_response("finally"),
            ]
            result = await client.make_api_call("hi")

        assert result.is_error is False
        assert result.text == "finally"
        assert mock_call.await_count == 4
        assert _delays(sleep) == [1.0, 2.0, 4.0]

    @pytest.mark.asyncio
    async def test_429_exhausts_retries(self, client, sleep):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = [_rate_limit_error() for _ in range(3)]
            result = await client.make_api_call("hi")

        assert result.error_kind is ErrorKind.REMOTE_RATE_LIMITED
        assert mock_call.await_count == 3
        # No wait after the final attempt
        assert _delays(sleep) == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_base_delay_is_configurable(self, settings, sleep):
        settings.retry_base_delay = 0.25
        client = ResilientLLMClient(settings, sleep=sleep)

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = [_rate_limit_error(), _make_text_response("ok")]
            await client.make_api_call("hi")

        assert _delays(sleep) == [0.25]

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self, settings, sleep):
        settings.max_retries = 1
        client = ResilientLLMClient(settings, sleep=sleep)

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = _rate_limit_error()
            result = await client.make_api_call("hi")

        assert result.error_kind is ErrorKind.REMOTE_RATE_LIMITED
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_retryable_error_stops_immediately(self, client, sleep):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = [
                _rate_limit_error(),
                AuthenticationError(message="invalid key", **PROVIDER),
                _make_text_response("never reached"),
            ]
            result = await client.make_api_call("hi")

        assert result.error_kind is ErrorKind.AUTHENTICATION_FAILED
        assert mock_call.await_count == 2
        assert _delays(sleep) == [1.0]


class TestErrorTaxonomy:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, expected",
        [
            (AuthenticationError(message="401 sk-secret-123", **PROVIDER), ErrorKind.AUTHENTICATION_FAILED),
            (InternalServerError(message="500 internal", **PROVIDER), ErrorKind.SERVER_ERROR),
            (ServiceUnavailableError(message="503 unavailable", **PROVIDER), ErrorKind.SERVER_ERROR),
            (Timeout(message="timed out", **PROVIDER), ErrorKind.TIMEOUT),
            (APIConnectionError(message="Connection refused", **PROVIDER), ErrorKind.NO_RESPONSE),
            (ConnectionRefusedError("Connection refused"), ErrorKind.NO_RESPONSE),
            (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
            (ValueError("something odd"), ErrorKind.UNKNOWN),
        ],
    )
    async def test_failure_maps_to_one_kind(self, client, sleep, error, expected):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = error
            result = await client.make_api_call("hi")

        assert result.is_error is True
        assert result.error_kind is expected
        assert result.error_message == expected.message
        assert result.text == ""
        # Only 429 is retried
        assert mock_call.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_exception_text_not_leaked(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.side_effect = AuthenticationError(
                message="Incorrect API key provided: sk-secret-123", **PROVIDER
            )
            result = await client.make_api_call("hi")

        assert "sk-secret-123" not in result.error_message

    def test_every_kind_has_message(self):
        for kind in ErrorKind:
            assert kind.message

    @pytest.mark.parametrize(
        "status, expected",
        [
            (429, ErrorKind.REMOTE_RATE_LIMITED),
            (401, ErrorKind.AUTHENTICATION_FAILED),
            (403, ErrorKind.AUTHENTICATION_FAILED),
            (408, ErrorKind.TIMEOUT),
            (502, ErrorKind.SERVER_ERROR),
            (400, ErrorKind.UNKNOWN),
        ],
    )
    def test_classify_by_status_code(self, status, expected):
        class StatusError(Exception):
            status_code = status

        assert classify_error(StatusError()) is expected

    def test_classify_rate_limit_error(self):
        assert classify_error(_rate_limit_error()) is ErrorKind.REMOTE_RATE_LIMITED


class TestResponseParsing:

    @pytest.mark.asyncio
    async def test_returns_text_and_reasoning(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("answer", reasoning="let me think")
            result = await client.make_api_call("hi")

        assert isinstance(result, LLMResult)
        assert result.text == "answer"
        assert result.reasoning == "let me think"
        assert result.error_kind is None
        assert result.error_message is None

    @pytest.mark.asyncio
    async def test_no_reasoning_channel(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response("answer")
            result = await client.make_api_call("hi")

        assert result.reasoning is None

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty_text(self, client):
        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = _make_text_response(None)
            result = await client.make_api_call("hi")

        assert result.is_error is False
        assert result.text == ""

    @pytest.mark.asyncio
    async def test_empty_choices_is_no_response(self, client):
        response = MagicMock()
        response.choices = []

        with patch("mentor.llm.client.acompletion", new_callable=AsyncMock) as mock_call:
            mock_call.return_value = response
            result = await client.make_api_call("hi")

        assert result.error_kind is ErrorKind.NO_RESPONSE
