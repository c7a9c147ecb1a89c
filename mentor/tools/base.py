"""
Base classes for mentor tools.

A tool turns validated arguments into a prompt, sends it through the shared
ResilientLLMClient and wraps the answer for the MCP layer. Tool handlers
never raise: every failure, from bad arguments to an exhausted retry budget,
comes back as a ToolResponse with ``is_error`` set.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mentor.llm.client import DEFAULT_SYSTEM_PROMPT, ResilientLLMClient
from mentor.llm.models import ErrorKind
from mentor.llm.prompts import (
    MissingVariableError,
    PromptTemplate,
    PromptVariables,
    create_prompt,
    fill_prompt_template,
    truncate_prompt,
    validate_prompt,
)
from mentor.tools.files import FileAccessError

logger = logging.getLogger(__name__)


class ToolContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResponse(BaseModel):
    """Result of a tool invocation, in the shape MCP tool results take."""

    content: list[ToolContent] = Field(default_factory=list)
    reasoning: list[ToolContent] | None = Field(
        default=None, description="Model reasoning channel, when the provider exposes one"
    )
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n".join(item.text for item in self.content)

    @classmethod
    def success(cls, text: str, reasoning: str | None = None) -> "ToolResponse":
        return cls(
            content=[ToolContent(text=text)],
            reasoning=[ToolContent(text=reasoning)] if reasoning else None,
        )

    @classmethod
    def error(cls, text: str) -> "ToolResponse":
        return cls(content=[ToolContent(text=text)], is_error=True)


class ToolArguments(BaseModel):
    """Base for tool argument models. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as 'field: message; ...' for tool callers."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        message = item["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


class MentorTool(ABC):
    """
    Abstract base class for mentor tools.

    Subclasses declare their name, description, argument model and prompt
    template, and implement ``build_variables``. The base class handles rate
    limit prechecks, argument validation, prompt assembly and the model call.

    Args:
        client: Shared resilient LLM client
        max_prompt_length: If set, prompts longer than this are truncated
            at a sentence or word boundary before sending
    """

    name: ClassVar[str]
    description: ClassVar[str]
    args_model: ClassVar[type[ToolArguments]]
    template: ClassVar[PromptTemplate]
    label: ClassVar[str]

    def __init__(self, client: ResilientLLMClient, max_prompt_length: int | None = None):
        self._client = client
        self._max_prompt_length = max_prompt_length

    def definition(self) -> dict[str, Any]:
        """
        Describe this tool for MCP ``list_tools``.

        Returns:
            Dict with name, description and the argument model's JSON schema
        """
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.args_model.model_json_schema(),
        }

    @abstractmethod
    async def build_variables(self, args: Any) -> PromptVariables:
        """
        Produce template variables from validated arguments.

        User-supplied strings must be passed through ``sanitize_input``.

        Raises:
            FileAccessError: If the tool reads a file and cannot
        """

    def format_response(self, text: str) -> str:
        """Post-process the model's answer. Identity by default."""
        return text

    def parse_arguments(self, arguments: Any) -> ToolArguments:
        """Validate raw arguments. Raises pydantic.ValidationError."""
        return self.args_model.model_validate(arguments if arguments is not None else {})

    async def build_prompt(self, args: ToolArguments) -> str:
        """Fill the user prompt; the system prompt is sent separately."""
        variables = await self.build_variables(args)
        return fill_prompt_template(self.template.template, variables)

    async def preview(self, arguments: dict[str, Any] | None) -> str:
        """
        Render the full prompt (system prompt prepended) without calling the model.

        Raises:
            pydantic.ValidationError, FileAccessError, MissingVariableError
        """
        args = self.parse_arguments(arguments)
        variables = await self.build_variables(args)
        return create_prompt(self.template, variables)

    def _fit_length(self, prompt: str) -> str:
        if self._max_prompt_length is None or validate_prompt(prompt, self._max_prompt_length):
            return prompt
        logger.warning(
            f"{self.name}: prompt of {len(prompt)} chars exceeds "
            f"{self._max_prompt_length}; truncating"
        )
        return truncate_prompt(prompt, self._max_prompt_length)

    async def run(self, arguments: dict[str, Any] | None) -> ToolResponse:
        """
        Execute the tool end to end.

        Returns:
            ToolResponse. Never raises for validation, file or model failures
        """
        # Reject before doing any file I/O or prompt work
        if not self._client.check_rate_limit():
            return ToolResponse.error(ErrorKind.RATE_LIMITED.message)

        try:
            args = self.parse_arguments(arguments)
        except ValidationError as e:
            return ToolResponse.error(f"Invalid arguments: {format_validation_error(e)}")

        try:
            prompt = await self.build_prompt(args)
        except (FileAccessError, MissingVariableError) as e:
            logger.warning(f"{self.name}: could not build prompt: {e}")
            return ToolResponse.error(f"Error processing {self.label}: {e}")

        prompt = self._fit_length(prompt)
        result = await self._client.make_api_call(
            prompt, self.template.system_prompt or DEFAULT_SYSTEM_PROMPT
        )

        if result.is_error:
            return ToolResponse.error(f"Error generating {self.label}: {result.error_message}")

        return ToolResponse.success(self.format_response(result.text), reasoning=result.reasoning)
