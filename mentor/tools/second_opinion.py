"""Second opinion: list the non-obvious considerations behind a user's request."""

from pydantic import Field

from mentor.llm.prompts import PromptTemplate, PromptVariables, sanitize_input
from mentor.tools.base import MentorTool, ToolArguments

SYSTEM_PROMPT = """You are an expert mentor providing second opinions on user requests.
Your role is to analyze requests and identify critical considerations that might be overlooked.
Focus on modern practices, potential pitfalls, and important factors for success.

Format your response as a clear, non-numbered list of points, focusing on what's most relevant
to the specific request. Each point should be concise but informative."""

PROMPT_TEMPLATE = PromptTemplate(
    template="""User Request: {user_request}

Task: List the critical considerations for this user request:
- Core problem/concept to address
- Common pitfalls or edge cases
- Security/performance implications (if applicable)
- Prerequisites or dependencies
- Resource constraints and requirements to consider
- Advanced topics that could add value
- Maintenance/scalability factors

Reminder: You are not fulfilling the user request, only generating a plain text, non-numbered list of non-obvious points of consideration.

Format: Brief, clear points in plain text. Focus on what's most relevant to the specific request.""",
    system_prompt=SYSTEM_PROMPT,
)


class SecondOpinionArgs(ToolArguments):
    user_request: str = Field(
        description="The user's original request (e.g., 'Explain Python to me' or 'Build a login system')"
    )


class SecondOpinionTool(MentorTool):
    name = "second_opinion"
    description = (
        "Provides a second opinion on a user's request by analyzing it with an LLM "
        "and listing critical considerations."
    )
    args_model = SecondOpinionArgs
    template = PROMPT_TEMPLATE
    label = "second opinion"

    async def build_variables(self, args: SecondOpinionArgs) -> PromptVariables:
        return {"user_request": sanitize_input(args.user_request)}

    def format_response(self, text: str) -> str:
        return f"<internal_thoughts>\n{text}\n</internal_thoughts>"
