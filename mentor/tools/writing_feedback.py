"""Writing feedback for essays, articles, blog posts and documentation."""

from pydantic import Field

from mentor.llm.prompts import PromptTemplate, PromptVariables, sanitize_input
from mentor.tools.base import MentorTool, ToolArguments

SYSTEM_PROMPT = """You are an expert writing coach and editor with extensive experience in various forms of writing.
Your role is to provide constructive feedback on written content, focusing on:

1. Clarity and coherence
2. Grammar and syntax
3. Style and tone
4. Structure and organization
5. Technical accuracy
6. Audience appropriateness
7. Overall effectiveness

Provide specific, actionable feedback that helps improve the writing while maintaining the author's voice.
Your critique should be constructive and include both strengths and areas for improvement."""

WRITING_TYPE_FOCUS: dict[str, str] = {
    "documentation": """Analyze this technical documentation focusing on:
- Technical accuracy and completeness
- Clarity and accessibility
- Structure and organization
- Code examples and explanations
- Versioning considerations
- API documentation standards
- Troubleshooting guidance
- Maintenance and updates""",
    "essay": """Analyze this essay focusing on:
- Thesis clarity and development
- Argument structure and logic
- Evidence and support
- Transitions and flow
- Introduction and conclusion
- Academic style
- Citations and references
- Overall persuasiveness""",
    "article": """Analyze this article focusing on:
- Hook and engagement
- Content organization
- Clarity and readability
- Supporting evidence
- Target audience appropriateness
- SEO considerations
- Call to action
- Overall impact""",
    "blog": """Analyze this blog post focusing on:
- Reader engagement
- Voice and tone
- Content structure
- SEO optimization
- Visual elements
- Call to action
- Social sharing potential
- Reader value""",
    "default": """Analyze this writing focusing on:
- Clarity and coherence
- Grammar and style
- Structure and flow
- Audience appropriateness
- Content accuracy
- Overall effectiveness
- Specific improvements""",
}

PROMPT_TEMPLATE = PromptTemplate(
    template="""Writing Type: {writing_type}

Content to Review:
{text}

{type_specific_focus}

Please provide comprehensive feedback covering:
1. Overall Assessment
2. Strengths
3. Areas for Improvement
4. Specific Recommendations for:
   - Clarity and Coherence
   - Grammar and Style
   - Structure and Organization
   - Content and Accuracy
5. Summary of Key Action Items

Focus on providing actionable feedback that will help improve the writing while maintaining its intended purpose and voice.""",
    system_prompt=SYSTEM_PROMPT,
)


class WritingFeedbackArgs(ToolArguments):
    text: str = Field(description="The text to review")
    writing_type: str = Field(
        description="The type of writing (e.g., 'essay', 'article', 'documentation')"
    )


class WritingFeedbackTool(MentorTool):
    name = "writing_feedback"
    description = (
        "Provides feedback on a piece of writing, such as an essay, article, or technical "
        "documentation, focusing on clarity, grammar, style, structure, and overall effectiveness."
    )
    args_model = WritingFeedbackArgs
    template = PROMPT_TEMPLATE
    label = "writing feedback"

    async def build_variables(self, args: WritingFeedbackArgs) -> PromptVariables:
        writing_type = sanitize_input(args.writing_type.lower())
        return {
            "writing_type": writing_type,
            "text": sanitize_input(args.text),
            "type_specific_focus": WRITING_TYPE_FOCUS.get(writing_type, WRITING_TYPE_FOCUS["default"]),
        }
