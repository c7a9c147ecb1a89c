"""
Data structures exchanged with the resilient LLM client.

``LLMResult`` is a tagged result: a call either succeeds (text, optional
reasoning) or fails with exactly one ``ErrorKind`` and a caller-safe message.
Transport exceptions never cross this boundary.
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChatMessage(BaseModel):
    """One prior conversation turn supplied by the caller."""

    role: Literal["system", "user", "assistant"]
    content: str

    model_config = ConfigDict(extra="ignore")


class ErrorKind(str, Enum):
    """Every way a model call can fail, as reported to callers."""

    RATE_LIMITED = "rate_limited"
    REMOTE_RATE_LIMITED = "remote_rate_limited"
    AUTHENTICATION_FAILED = "authentication_failed"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    NO_RESPONSE = "no_response"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        return _ERROR_MESSAGES[self]

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.REMOTE_RATE_LIMITED


_ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    ErrorKind.REMOTE_RATE_LIMITED: (
        "The model API is rate limiting requests and retries were exhausted. "
        "Please try again later."
    ),
    ErrorKind.AUTHENTICATION_FAILED: (
        "Authentication with the model API failed. Check the configured API key."
    ),
    ErrorKind.SERVER_ERROR: "The model API returned a server error. Please try again later.",
    ErrorKind.TIMEOUT: "The request to the model API timed out.",
    ErrorKind.NO_RESPONSE: "No response was received from the model API.",
    ErrorKind.UNKNOWN: "An unexpected error occurred while calling the model API.",
}


class LLMResult(BaseModel):
    """
    Outcome of a single ``make_api_call``.

    Build instances with ``LLMResult.success`` or ``LLMResult.failure``;
    validation rejects results that carry both text and an error.
    """

    text: str = Field(default="", description="Primary response text")
    reasoning: str | None = Field(
        default=None,
        description="Separate reasoning channel, for providers that expose one",
    )
    error_kind: ErrorKind | None = Field(default=None, description="Set iff the call failed")
    error_message: str | None = Field(default=None, description="Caller-safe error description")

    @model_validator(mode="after")
    def _check_tagging(self) -> "LLMResult":
        if (self.error_kind is None) != (self.error_message is None):
            raise ValueError("error_kind and error_message must be set together")
        if self.error_kind is not None and (self.text or self.reasoning):
            raise ValueError("a failed result cannot carry response text")
        return self

    @property
    def is_error(self) -> bool:
        return self.error_kind is not None

    @classmethod
    def success(cls, text: str, reasoning: str | None = None) -> "LLMResult":
        return cls(text=text, reasoning=reasoning or None)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str | None = None) -> "LLMResult":
        return cls(error_kind=kind, error_message=message or kind.message)
