"""
Prompt composition: template filling and input sanitization.

Templates use ``{name}`` placeholders. User-supplied values go through
``sanitize_input`` before they are placed into the variables mapping, which
escapes code fences and braces so user text cannot close a fenced block the
template opened or masquerade as a further placeholder if the result is
reused as a template.

This is a lightweight defense. It keeps user text from colliding with the
template syntax; it does not stop a model from following instructions that
are written in plain prose inside the user's text.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

PromptVariables = Mapping[str, str | int | float | bool]

DEFAULT_MAX_PROMPT_LENGTH = 4000
ELLIPSIS = "..."

# {name} with no nested braces and no backslash inside; "\{name\}" is escaped text
PLACEHOLDER_PATTERN = re.compile(r"(?<!\\)\{([^{}\\]+)\}")

_CODE_FENCE = "```"
_ESCAPED_CODE_FENCE = "\\`\\`\\`"
_UNESCAPED_BRACE = re.compile(r"(?<!\\)([{}])")
_SENTENCE_END = re.compile(r"[.!?]")


class PromptTemplate(BaseModel):
    """
    A prompt with ``{name}`` placeholders and an optional system prompt.

    Immutable: tools define their templates once at import time and share them.
    """

    template: str = Field(description="Prompt text containing {name} placeholders")
    system_prompt: str | None = Field(
        default=None, description="Instructions for the model's system role"
    )

    model_config = ConfigDict(frozen=True)


class MissingVariableError(KeyError):
    """Raised when a template references placeholders that have no value."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required variables: {', '.join(missing)}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message and add quotes
        return self.args[0]


def sanitize_input(text: str) -> str:
    """
    Escape template-significant sequences in user input and trim it.

    Triple backticks become ``\\`\\`\\``` and ``{``/``}`` become ``\\{``/``\\}``.
    Braces that are already escaped are left as they are, so sanitizing
    already-sanitized text returns it unchanged.
    """
    escaped = text.replace(_CODE_FENCE, _ESCAPED_CODE_FENCE)
    escaped = _UNESCAPED_BRACE.sub(r"\\\1", escaped)
    return escaped.strip()


def find_placeholders(template: str) -> list[str]:
    """Return distinct placeholder names in order of first appearance."""
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(template)))


def _stringify(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def fill_prompt_template(template: str, variables: PromptVariables) -> str:
    """
    Replace every ``{name}`` placeholder with its value.

    Args:
        template: Template text
        variables: Placeholder values; extra keys are ignored. String values
            are inserted as-is and should already be sanitized.

    Returns:
        The filled template

    Raises:
        MissingVariableError: Listing every placeholder without a value
    """
    missing = [name for name in find_placeholders(template) if name not in variables]
    if missing:
        raise MissingVariableError(missing)

    return PLACEHOLDER_PATTERN.sub(lambda match: _stringify(variables[match.group(1)]), template)


def create_prompt(prompt_template: PromptTemplate, variables: PromptVariables) -> str:
    """
    Fill the template and prepend its system prompt as plain text.

    Use this for endpoints that take a single instruction string. When the
    endpoint has a real system role, call ``fill_prompt_template`` and send
    ``system_prompt`` separately instead.
    """
    filled = fill_prompt_template(prompt_template.template, variables)

    if prompt_template.system_prompt:
        return f"{prompt_template.system_prompt}\n\n{filled}"

    return filled


def validate_prompt(prompt: str, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> bool:
    """Return True if the prompt fits within ``max_length`` characters."""
    return len(prompt) <= max_length


def truncate_prompt(prompt: str, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    """
    Shorten a prompt to at most ``max_length`` characters.

    Cuts after the last sentence terminator (``.``, ``!`` or ``?``) inside the
    limit. Without one, cuts at the last word boundary and appends an
    ellipsis; a single overlong word is hard-cut to make room for it. Limits
    too small to hold the ellipsis get a plain hard cut.
    """
    if validate_prompt(prompt, max_length):
        return prompt

    if max_length <= len(ELLIPSIS):
        return prompt[: max(0, max_length)]

    window = prompt[:max_length]
    sentence_ends = [match.end() for match in _SENTENCE_END.finditer(window)]
    if sentence_ends:
        return window[: sentence_ends[-1]]

    room = max_length - len(ELLIPSIS)
    window = prompt[:room]
    last_space = window.rfind(" ")
    if last_space > 0:
        window = window[:last_space]
    return window.rstrip() + ELLIPSIS
