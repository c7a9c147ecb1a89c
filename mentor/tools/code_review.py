"""
Code review for a local file or an inline snippet.

Exactly one of ``file_path`` or ``code_snippet`` must be given. Files are
read through ``read_file_content`` and must live under the configured root.
"""

from pathlib import Path

from pydantic import ConfigDict, Field, model_validator

from mentor.llm.client import ResilientLLMClient
from mentor.llm.prompts import PromptTemplate, PromptVariables, sanitize_input
from mentor.tools.base import MentorTool, ToolArguments
from mentor.tools.files import read_file_content

SYSTEM_PROMPT = """You are an expert code reviewer with deep knowledge of software development best practices,
security considerations, and performance optimization. Your task is to analyze code and provide detailed,
actionable feedback focusing on:

1. Potential bugs and logic issues
2. Security vulnerabilities
3. Performance bottlenecks
4. Code style and maintainability
5. Best practices and patterns
6. Possible improvements

Format your response as a clear, structured analysis with sections for different types of findings.
Be specific and provide examples or suggestions where applicable."""

PROMPT_TEMPLATE = PromptTemplate(
    template="""Review the following {language} code and provide comprehensive feedback:

```{language}
{code}
```

Please analyze the code for:
- Potential bugs or logic errors
- Security vulnerabilities
- Performance optimization opportunities
- Code style and maintainability issues
- Adherence to {language} best practices
- Possible improvements or alternative approaches

Format your response with clear sections for:
1. Critical Issues (if any)
2. Security Concerns
3. Performance Considerations
4. Code Style & Best Practices
5. Suggested Improvements""",
    system_prompt=SYSTEM_PROMPT,
)


class CodeReviewArgs(ToolArguments):
    language: str = Field(description="The programming language of the code")
    file_path: str | None = Field(
        default=None,
        description="The full path to the local file containing the code to review",
    )
    code_snippet: str | None = Field(
        default=None,
        description="Optional small code snippet for quick reviews (alternative to file_path)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "oneOf": [
                {"required": ["file_path", "language"]},
                {"required": ["code_snippet", "language"]},
            ]
        }
    )

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "CodeReviewArgs":
        if bool(self.file_path) == bool(self.code_snippet):
            raise ValueError("Provide exactly one of file_path or code_snippet")
        return self


class CodeReviewTool(MentorTool):
    name = "code_review"
    description = (
        "Provides a code review for a given file or code snippet, focusing on potential bugs, "
        "style issues, performance bottlenecks, and security vulnerabilities."
    )
    args_model = CodeReviewArgs
    template = PROMPT_TEMPLATE
    label = "code review"

    def __init__(
        self,
        client: ResilientLLMClient,
        allowed_root: str | Path | None = None,
        max_prompt_length: int | None = None,
    ):
        super().__init__(client, max_prompt_length=max_prompt_length)
        self._allowed_root = Path(allowed_root) if allowed_root is not None else Path.cwd()

    async def build_variables(self, args: CodeReviewArgs) -> PromptVariables:
        if args.file_path:
            code = await read_file_content(args.file_path, self._allowed_root)
        else:
            code = args.code_snippet

        return {
            "language": sanitize_input(args.language),
            "code": sanitize_input(code),
        }
