"""Brainstorm enhancements for a concept, product or feature."""

from pydantic import Field

from mentor.llm.prompts import PromptTemplate, PromptVariables, sanitize_input
from mentor.tools.base import MentorTool, ToolArguments

SYSTEM_PROMPT = """You are an innovative product strategist and creative thinker with expertise in
various domains. Your role is to generate creative and practical ideas for improving concepts,
products, or features. Focus on:

1. Innovation and creativity
2. Technical feasibility
3. User value and impact
4. Market differentiation
5. Implementation complexity
6. Resource considerations
7. Competitive advantage

Generate diverse, actionable ideas that balance innovation with practicality.
Consider both immediate improvements and long-term possibilities.
Provide context and rationale for each suggestion."""

PROMPT_TEMPLATE = PromptTemplate(
    template="""Concept to Enhance: {concept}

Please brainstorm potential improvements and enhancements, considering:

1. Core Functionality
   - Essential features
   - Performance aspects
   - Reliability improvements
   - Scalability considerations

2. User Experience
   - Usability enhancements
   - Interface improvements
   - Accessibility features
   - Personalization options

3. Technical Innovation
   - Emerging technologies
   - Novel approaches
   - Integration possibilities
   - Automation opportunities

4. Market Differentiation
   - Competitive advantages
   - Unique selling points
   - Market trends
   - User demands

5. Implementation Considerations
   - Technical feasibility
   - Resource requirements
   - Timeline estimates
   - Potential challenges

Format your response with clear sections for:
1. Quick Wins (immediate, low-effort improvements)
2. Strategic Enhancements (medium-term, moderate complexity)
3. Transformative Ideas (long-term, innovative solutions)
4. Implementation Recommendations

For each suggestion, provide:
- Clear description
- Expected impact
- Implementation complexity
- Resource requirements
- Potential challenges""",
    system_prompt=SYSTEM_PROMPT,
)


class BrainstormEnhancementsArgs(ToolArguments):
    concept: str = Field(description="A description of the concept, product, or feature to enhance")


class BrainstormEnhancementsTool(MentorTool):
    name = "brainstorm_enhancements"
    description = (
        "Generates creative ideas for improving a given concept, product, or feature, "
        "focusing on innovation, feasibility, and user value."
    )
    args_model = BrainstormEnhancementsArgs
    template = PROMPT_TEMPLATE
    label = "enhancement ideas"

    async def build_variables(self, args: BrainstormEnhancementsArgs) -> PromptVariables:
        return {"concept": sanitize_input(args.concept)}
