"""
MentorServer: MCP server exposing the mentor tools over stdio.

Lifecycle:
- Tools and the shared LLM client are built by the caller and injected
- ``serve()`` runs the stdio transport until EOF or SIGINT/SIGTERM
- On a shutdown signal, new tool calls are refused immediately; calls
  already in flight get a grace period to finish before the transport is
  cancelled
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Sequence
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError

from mentor.config.settings import ServerSettings
from mentor.tools.base import MentorTool, ToolResponse

logger = logging.getLogger(__name__)


class ToolCallError(Exception):
    """A tool ran but reported failure. The MCP layer returns it with isError=True."""

    def __init__(self, response: ToolResponse):
        self.response = response
        super().__init__(response.text)


class MentorServer:
    """
    MCP server that dispatches tool calls to MentorTool instances.

    Args:
        settings: Server identity and reasoning-channel options
        tools: Tool instances, all sharing one ResilientLLMClient
        shutdown_grace_period: Seconds to wait for in-flight calls on shutdown
    """

    def __init__(
        self,
        settings: ServerSettings,
        tools: Sequence[MentorTool],
        shutdown_grace_period: float = 10.0,
    ):
        self._settings = settings
        self._tools: dict[str, MentorTool] = {tool.name: tool for tool in tools}
        self._grace_period = shutdown_grace_period
        self._shutting_down = False
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._serve_task: asyncio.Task | None = None

        self.server = Server(settings.name, version=settings.version)
        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def tools(self) -> dict[str, MentorTool]:
        return dict(self._tools)

    async def list_tools(self) -> list[types.Tool]:
        """Describe every registered tool."""
        tools = []
        for tool in self._tools.values():
            definition = tool.definition()
            tools.append(
                types.Tool(
                    name=definition["name"],
                    description=definition["description"],
                    inputSchema=definition["input_schema"],
                )
            )
        return tools

    def _to_content(self, response: ToolResponse) -> list[types.TextContent]:
        content = [types.TextContent(type="text", text=item.text) for item in response.content]
        if self._settings.include_reasoning and response.reasoning:
            for item in response.reasoning:
                content.append(
                    types.TextContent(type="text", text=f"<reasoning>\n{item.text}\n</reasoning>")
                )
        return content

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        """
        Run a tool by name.

        Raises:
            McpError: Server shutting down (INTERNAL_ERROR) or unknown tool (METHOD_NOT_FOUND)
            ToolCallError: The tool ran and reported an error
        """
        if self._shutting_down:
            raise McpError(types.ErrorData(code=types.INTERNAL_ERROR, message="Server is shutting down"))

        tool = self._tools.get(name)
        if tool is None:
            raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message=f"Tool not found: {name}"))

        self._in_flight += 1
        self._idle.clear()
        try:
            logger.info(f"Calling tool {name}")
            response = await tool.run(arguments)
        finally:
            self._in_flight -= 1
            if self._in_flight == 0:
                self._idle.set()

        if response.is_error:
            logger.warning(f"Tool {name} returned an error: {response.text}")
            raise ToolCallError(response)

        return self._to_content(response)

    async def stop(self) -> None:
        """Refuse new calls, let in-flight calls finish, then end ``serve()``."""
        if self._shutting_down:
            return

        self._shutting_down = True
        logger.info("Shutting down server...")

        if self._in_flight:
            try:
                await asyncio.wait_for(self._idle.wait(), timeout=self._grace_period)
            except asyncio.TimeoutError:
                logger.warning(
                    f"{self._in_flight} tool call(s) still running after "
                    f"{self._grace_period:.0f}s; cancelling"
                )

        if self._serve_task is not None and not self._serve_task.done():
            self._serve_task.cancel()
        logger.info("Server stopped")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Not available on Windows event loops
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, lambda: asyncio.ensure_future(self.stop()))

    async def serve(self) -> None:
        """Serve MCP over stdin/stdout until the client disconnects or a signal arrives."""
        self._serve_task = asyncio.current_task()
        self._install_signal_handlers()

        try:
            async with stdio_server() as (read_stream, write_stream):
                logger.info(
                    f"{self._settings.name} {self._settings.version} running on stdio "
                    f"({len(self._tools)} tools)"
                )
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        except asyncio.CancelledError:
            if not self._shutting_down:
                raise
