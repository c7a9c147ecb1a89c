"""
Mentor - MCP server offering LLM-backed second opinions and reviews.

This package provides code review, design critique, writing feedback,
brainstorming and second-opinion tools on top of a rate-limited, retrying
LLM client.
"""

__version__ = "1.0.0"
