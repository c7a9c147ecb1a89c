"""Design critique for UI mockups, app designs and architecture documents."""

from pydantic import Field

from mentor.llm.prompts import PromptTemplate, PromptVariables, sanitize_input
from mentor.tools.base import MentorTool, ToolArguments

SYSTEM_PROMPT = """You are an expert design critic with extensive experience in UI/UX design,
system architecture, and various design methodologies. Your role is to provide constructive feedback
on designs, focusing on:

1. Usability and user experience
2. Visual design and aesthetics
3. Consistency and coherence
4. Accessibility considerations
5. Technical feasibility
6. Industry best practices
7. Potential improvements

Provide clear, actionable feedback that helps improve the design while acknowledging its strengths.
Structure your critique to cover both high-level concepts and specific details."""

# Keyed by lowercased design type
DESIGN_TYPE_FOCUS: dict[str, str] = {
    "web ui": """Analyze this web UI design focusing on:
- Visual hierarchy and layout
- Navigation and information architecture
- Responsive design considerations
- Color scheme and typography
- Interactive elements and micro-interactions
- Loading states and error handling
- Cross-browser compatibility
- Mobile responsiveness""",
    "mobile app": """Analyze this mobile app design focusing on:
- Platform-specific design guidelines (iOS/Android)
- Touch interactions and gestures
- Screen transitions and navigation flow
- App state management
- Offline functionality
- Performance considerations
- Device compatibility""",
    "system architecture": """Analyze this system architecture design focusing on:
- Scalability and performance
- Reliability and fault tolerance
- Security considerations
- Data flow and management
- Integration points
- Deployment considerations
- Monitoring and maintenance
- Cost implications""",
    "default": """Analyze this design focusing on:
- Overall effectiveness and clarity
- User experience and usability
- Technical feasibility
- Industry best practices
- Potential improvements
- Implementation considerations
- Maintenance aspects""",
}

PROMPT_TEMPLATE = PromptTemplate(
    template="""Design Type: {design_type}

Design Document/Description:
{design_document}

{type_specific_focus}

Please provide a comprehensive critique covering:
1. Overall Assessment
2. Strengths
3. Areas for Improvement
4. Specific Recommendations
5. Implementation Considerations

Focus on providing actionable feedback that can be used to improve the design.""",
    system_prompt=SYSTEM_PROMPT,
)


class DesignCritiqueArgs(ToolArguments):
    design_document: str = Field(description="A description or URL to the design document/image")
    design_type: str = Field(
        description="Type of design (e.g., 'web UI', 'system architecture', 'mobile app')"
    )


class DesignCritiqueTool(MentorTool):
    name = "design_critique"
    description = (
        "Offers a critique of a design document, UI/UX mockup, or architectural diagram, "
        "focusing on usability, aesthetics, consistency, accessibility, and potential design flaws."
    )
    args_model = DesignCritiqueArgs
    template = PROMPT_TEMPLATE
    label = "design critique"

    async def build_variables(self, args: DesignCritiqueArgs) -> PromptVariables:
        design_type = sanitize_input(args.design_type.lower())
        return {
            "design_type": design_type,
            "design_document": sanitize_input(args.design_document),
            "type_specific_focus": DESIGN_TYPE_FOCUS.get(design_type, DESIGN_TYPE_FOCUS["default"]),
        }
