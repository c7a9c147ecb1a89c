"""
Mentor CLI entry point.

Provides the MCP server command and utilities for inspecting and exercising
tools from a terminal. This module is the composition root: settings, the
rate limiter, the LLM client and the tools are constructed here and passed
down explicitly.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from mentor import __version__
from mentor.config.logging import get_logger, setup_logging
from mentor.config.settings import Settings, load_settings
from mentor.llm import ResilientLLMClient, TokenBucket
from mentor.llm.prompts import MissingVariableError
from mentor.tools import MentorTool, build_tools
from mentor.tools.base import format_validation_error
from mentor.tools.files import FileAccessError

TOOL_NAMES = [
    "second_opinion",
    "code_review",
    "design_critique",
    "writing_feedback",
    "brainstorm_enhancements",
]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="mentor",
        description="MCP server providing LLM-backed reviews, critiques and second opinions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Mentor {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "run",
        help="Run the MCP server on stdio",
    )

    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    subparsers.add_parser(
        "tools",
        help="List available tools and their input schemas",
    )

    for name, help_text in (
        ("preview", "Print the prompt a tool would send, without calling the model"),
        ("call", "Run a tool once and print its result"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("tool", choices=TOOL_NAMES, help="Tool to use")
        sub.add_argument(
            "--args",
            dest="tool_args",
            default="{}",
            help='Tool arguments as a JSON object, e.g. \'{"concept": "a todo app"}\'',
        )

    return parser


def build_client(settings: Settings) -> ResilientLLMClient:
    """Create the one LLM client shared by every tool."""
    rate_limiter = TokenBucket(
        capacity=settings.rate_limit.capacity,
        refill_rate=settings.rate_limit.refill_rate,
    )
    return ResilientLLMClient(settings.llm, rate_limiter=rate_limiter)


def _parse_tool_args(raw: str) -> dict[str, Any]:
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("--args must be a JSON object")
    return value


def _find_tool(tools: list[MentorTool], name: str) -> MentorTool:
    for tool in tools:
        if tool.name == name:
            return tool
    raise ValueError(f"Unknown tool: {name}")


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("\n=== Mentor Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nServer: {settings.server.name} {settings.server.version}")
    logger.info(f"Include Reasoning: {settings.server.include_reasoning}")
    logger.info(f"Max Prompt Length: {settings.server.max_prompt_length or 'unlimited'}")
    logger.info(f"\nLLM Model: {settings.llm.model}")
    logger.info(f"LLM Base URL: {settings.llm.base_url or 'provider default'}")
    logger.info(f"LLM API Key: {'Set' if settings.llm.api_key else 'Not set'}")
    logger.info(f"LLM Max Tokens: {settings.llm.max_tokens}")
    logger.info(f"LLM Timeout: {settings.llm.timeout}s")
    logger.info(f"LLM Max Retries: {settings.llm.max_retries}")
    logger.info(f"LLM Retry Base Delay: {settings.llm.retry_base_delay}s")
    logger.info(f"\nRate Limit Capacity: {settings.rate_limit.capacity}")
    logger.info(f"Rate Limit Refill: {settings.rate_limit.refill_rate}/s")
    logger.info(f"\nAllowed File Root: {settings.files.allowed_root}")

    return 0


def cmd_tools(settings: Settings) -> int:
    """Print tool definitions as JSON."""
    tools = build_tools(build_client(settings), settings)
    print(json.dumps([tool.definition() for tool in tools], indent=2))
    return 0


async def cmd_preview(args, settings: Settings) -> int:
    """Print the composed prompt for a tool call."""
    logger = get_logger(__name__)

    tools = build_tools(build_client(settings), settings)
    try:
        tool = _find_tool(tools, args.tool)
        prompt = await tool.preview(_parse_tool_args(args.tool_args))
    except ValidationError as e:
        logger.error(f"Invalid arguments: {format_validation_error(e)}")
        return 1
    except (ValueError, FileAccessError, MissingVariableError) as e:
        logger.error(f"Cannot build prompt: {e}")
        return 1

    print(prompt)
    return 0


async def cmd_call(args, settings: Settings) -> int:
    """Run one tool call and print the result."""
    logger = get_logger(__name__)

    if not settings.llm.api_key:
        logger.warning("LLM API key not set (LLM__API_KEY). The call will fail.")

    tools = build_tools(build_client(settings), settings)
    try:
        tool = _find_tool(tools, args.tool)
        arguments = _parse_tool_args(args.tool_args)
    except ValueError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Sending {args.tool} to {settings.llm.model}...")
    response = await tool.run(arguments)

    if response.is_error:
        print(response.text, file=sys.stderr)
        return 1

    print(response.text)
    if response.reasoning and settings.server.include_reasoning:
        print("\n--- Reasoning ---")
        for item in response.reasoning:
            print(item.text)
    return 0


async def cmd_run(settings: Settings) -> int:
    """Start the MCP server on stdio."""
    from mentor.server import MentorServer

    logger = get_logger(__name__)

    if not settings.llm.api_key:
        logger.warning(
            "LLM API key not set (LLM__API_KEY). "
            "The server will start but every tool call will fail until this is configured."
        )

    tools = build_tools(build_client(settings), settings)
    server = MentorServer(settings.server, tools)
    await server.serve()
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "tools":
        return cmd_tools(settings)
    elif args.command == "preview":
        return asyncio.run(cmd_preview(args, settings))
    elif args.command == "call":
        return asyncio.run(cmd_call(args, settings))
    elif args.command == "run":
        return asyncio.run(cmd_run(settings))
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
