"""
Resilient LLM client: admission control, bounded retry, error normalization.

Every tool handler shares one client instance. A call goes through:

    make_api_call(prompt, system_prompt, previous_turns)
                          ↓
            TokenBucket.try_consume()    denied → RATE_LIMITED (no network)
                          ↓
            LiteLLM acompletion()  ←→  backoff on HTTP 429 only
                          ↓
                 LLMResult (success or exactly one ErrorKind)

Notes:
- Only server-side rate limiting (HTTP 429) is retried, with pure
  exponential backoff: retry_base_delay * 2**attempt. Every other failure
  is reported after the first attempt.
- LiteLLM/OpenAI SDK retries are disabled (max_retries=0).
- Exceptions stop at this module. Callers receive an LLMResult whose message
  comes from a fixed table, and only the exception type is logged.
- System and user text are sanitized again here. The sanitizer is
  idempotent, so already-sanitized input is unchanged.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from litellm import acompletion
from litellm.exceptions import (
    APIConnectionError,
    AuthenticationError,
    InternalServerError,
    PermissionDeniedError,
    RateLimitError,
    ServiceUnavailableError,
    Timeout,
)
from pydantic import ValidationError

from mentor.config.settings import LLMSettings
from mentor.llm.models import ChatMessage, ErrorKind, LLMResult
from mentor.llm.prompts import sanitize_input
from mentor.llm.rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful AI assistant."


def classify_error(exc: BaseException) -> ErrorKind:
    """Map a transport exception to the error kind reported to callers."""
    if isinstance(exc, RateLimitError):
        return ErrorKind.REMOTE_RATE_LIMITED
    if isinstance(exc, (AuthenticationError, PermissionDeniedError)):
        return ErrorKind.AUTHENTICATION_FAILED
    # Timeout before connection errors: both are OSError/APIConnectionError subclasses
    if isinstance(exc, (Timeout, TimeoutError, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, (APIConnectionError, ConnectionError)):
        return ErrorKind.NO_RESPONSE
    if isinstance(exc, (InternalServerError, ServiceUnavailableError)):
        return ErrorKind.SERVER_ERROR

    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        if status == 429:
            return ErrorKind.REMOTE_RATE_LIMITED
        if status in (401, 403):
            return ErrorKind.AUTHENTICATION_FAILED
        if status == 408:
            return ErrorKind.TIMEOUT
        if status >= 500:
            return ErrorKind.SERVER_ERROR

    return ErrorKind.UNKNOWN


class ResilientLLMClient:
    """
    Rate-limited, retrying client for a chat-completion endpoint.

    Construct one per process (or per independently configured endpoint) and
    hand it to every tool. Each call is independent: the client keeps no
    conversation state, only the rate limiter's token count.

    Args:
        settings: LLM configuration (model, key, base URL, timeout, retries)
        rate_limiter: Shared admission controller; defaults to a 50-token
            bucket refilling at 10 tokens/second
        sleep: Awaitable delay used between retries (injectable for tests)
    """

    def __init__(
        self,
        settings: LLMSettings,
        rate_limiter: TokenBucket | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._settings = settings
        self._rate_limiter = rate_limiter if rate_limiter is not None else TokenBucket()
        self._sleep = sleep

    @property
    def rate_limiter(self) -> TokenBucket:
        return self._rate_limiter

    def check_rate_limit(self) -> bool:
        """
        Return True if a call made now would be admitted.

        Does not consume a token: ``make_api_call`` performs the real
        admission check. Use this to reject a request before doing any
        prompt-building work.
        """
        return self._rate_limiter.available >= 1

    def _build_messages(
        self,
        prompt: str,
        system_prompt: str,
        previous_turns: Sequence[ChatMessage | dict[str, Any]] | None,
    ) -> list[dict[str, str]]:
        """
        Assemble [system, *previous turns, user].

        Prior turns are reduced to role and content, dropping anything else
        a provider may have attached (e.g. reasoning_content).
        """
        messages = [{"role": "system", "content": sanitize_input(system_prompt)}]
        for turn in previous_turns or ():
            message = turn if isinstance(turn, ChatMessage) else ChatMessage.model_validate(turn)
            messages.append({"role": message.role, "content": message.content})
        messages.append({"role": "user", "content": sanitize_input(prompt)})
        return messages

    def _completion_kwargs(self, messages: list[dict[str, str]]) -> dict[str, Any]:
        call_kwargs: dict[str, Any] = {
            "model": self._settings.model,
            "messages": messages,
            "max_tokens": self._settings.max_tokens,
            "api_key": self._settings.api_key,
            "timeout": self._settings.timeout,
            "max_retries": 0,
        }
        if self._settings.base_url:
            call_kwargs["api_base"] = self._settings.base_url
        if self._settings.extra_headers:
            call_kwargs["extra_headers"] = dict(self._settings.extra_headers)
        return call_kwargs

    async def _complete_with_backoff(self, call_kwargs: dict[str, Any]) -> Any | ErrorKind:
        """
        Run the completion, retrying server-side rate limiting.

        Returns:
            The provider response, or the ErrorKind that ended the attempts
        """
        attempts = self._settings.max_retries
        last_error = ErrorKind.UNKNOWN

        for attempt in range(attempts):
            try:
                return await acompletion(**call_kwargs)
            except Exception as e:
                kind = classify_error(e)
                logger.warning(
                    f"Model API attempt {attempt + 1}/{attempts} failed: "
                    f"{type(e).__name__} ({kind.value})"
                )

            last_error = kind
            if not kind.retryable:
                return kind

            if attempt < attempts - 1:
                delay = self._settings.retry_base_delay * 2**attempt
                logger.info(f"Remote rate limit hit; retrying in {delay:.2f}s")
                await self._sleep(delay)

        return last_error

    @staticmethod
    def _parse_response(response: Any) -> LLMResult:
        """Extract the answer text and, when present, the reasoning channel."""
        choices = getattr(response, "choices", None)
        if not choices:
            logger.error("Model API response contained no choices")
            return LLMResult.failure(ErrorKind.NO_RESPONSE)

        message = getattr(choices[0], "message", None)
        if message is None:
            logger.error("Model API response choice contained no message")
            return LLMResult.failure(ErrorKind.NO_RESPONSE)

        text = message.content or ""
        reasoning = getattr(message, "reasoning_content", None)
        if not isinstance(reasoning, str):
            reasoning = None
        return LLMResult.success(text=text, reasoning=reasoning)

    async def make_api_call(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        previous_turns: Sequence[ChatMessage | dict[str, Any]] | None = None,
    ) -> LLMResult:
        """
        Send one prompt to the model and normalize the outcome.

        Args:
            prompt: Fully composed user prompt
            system_prompt: Instructions for the system role
            previous_turns: Prior conversation, oldest first

        Returns:
            LLMResult: success with text (and reasoning if the provider has a
            reasoning channel), or failure with one ErrorKind. Never raises for
            transport failures or malformed history.
        """
        # History is checked before admission; a rejected history spends no token
        try:
            messages = self._build_messages(prompt, system_prompt, previous_turns)
        except ValidationError as e:
            logger.error(f"Rejected conversation history: {e.error_count()} invalid field(s)")
            return LLMResult.failure(ErrorKind.UNKNOWN, "Invalid conversation history")

        if not self._rate_limiter.try_consume():
            logger.warning("Local rate limit exceeded; request rejected without a network call")
            return LLMResult.failure(ErrorKind.RATE_LIMITED)

        if not self._settings.api_key:
            logger.error("API key not configured. Set LLM__API_KEY in your environment.")
            return LLMResult.failure(
                ErrorKind.AUTHENTICATION_FAILED,
                "API key not configured. Set LLM__API_KEY in your environment.",
            )

        logger.debug(f"Calling {self._settings.model} with {len(messages)} messages")

        outcome = await self._complete_with_backoff(self._completion_kwargs(messages))
        if isinstance(outcome, ErrorKind):
            return LLMResult.failure(outcome)

        return self._parse_response(outcome)
