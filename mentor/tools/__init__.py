"""
Tool Integration Layer.

Mentor tools exposed over MCP. Each tool validates its arguments, composes a
prompt from sanitized input and asks the shared ResilientLLMClient for an
answer.
"""

from mentor.config.settings import Settings
from mentor.llm.client import ResilientLLMClient
from mentor.tools.base import MentorTool, ToolContent, ToolResponse
from mentor.tools.brainstorm import BrainstormEnhancementsTool
from mentor.tools.code_review import CodeReviewTool
from mentor.tools.design_critique import DesignCritiqueTool
from mentor.tools.second_opinion import SecondOpinionTool
from mentor.tools.writing_feedback import WritingFeedbackTool


def build_tools(client: ResilientLLMClient, settings: Settings) -> list[MentorTool]:
    """Instantiate every tool around one shared client."""
    max_length = settings.server.max_prompt_length
    return [
        SecondOpinionTool(client, max_prompt_length=max_length),
        CodeReviewTool(
            client,
            allowed_root=settings.files.allowed_root,
            max_prompt_length=max_length,
        ),
        DesignCritiqueTool(client, max_prompt_length=max_length),
        WritingFeedbackTool(client, max_prompt_length=max_length),
        BrainstormEnhancementsTool(client, max_prompt_length=max_length),
    ]


__all__ = [
    "build_tools",
    "MentorTool",
    "ToolContent",
    "ToolResponse",
    "BrainstormEnhancementsTool",
    "CodeReviewTool",
    "DesignCritiqueTool",
    "SecondOpinionTool",
    "WritingFeedbackTool",
]
