"""
LLM access layer.

Everything between a tool handler's composed prompt and the remote model:

    sanitize_input() / fill_prompt_template()  →  prompt string
                                                      ↓
    ResilientLLMClient.make_api_call(prompt, system_prompt, previous_turns)
        TokenBucket admission → LiteLLM acompletion() with 429 backoff
                                                      ↓
                                                  LLMResult

Key responsibilities:
- Bound the outbound call rate with a lazily refilled token bucket
- Compose prompts from templates without letting user text alter the template
- Retry server-side rate limiting, fail fast on everything else
- Report every outcome as a tagged LLMResult rather than an exception
"""

from mentor.llm.client import ResilientLLMClient, classify_error
from mentor.llm.models import ChatMessage, ErrorKind, LLMResult
from mentor.llm.prompts import (
    MissingVariableError,
    PromptTemplate,
    create_prompt,
    fill_prompt_template,
    sanitize_input,
    truncate_prompt,
    validate_prompt,
)
from mentor.llm.rate_limiter import TokenBucket

__all__ = [
    "ResilientLLMClient",
    "classify_error",
    "ChatMessage",
    "ErrorKind",
    "LLMResult",
    "MissingVariableError",
    "PromptTemplate",
    "create_prompt",
    "fill_prompt_template",
    "sanitize_input",
    "truncate_prompt",
    "validate_prompt",
    "TokenBucket",
]
