"""MCP tool surface: three tools per role backed by the AskOrchestrator."""

from __future__ import annotations

from typing import Any

import structlog
from mcp.server import Server
from mcp.types import CallToolResult, TextContent, Tool

from ask_on_slack import __version__
from ask_on_slack.application.ask_orchestrator import AskOrchestrator
from ask_on_slack.core.domain.errors import AskOnSlackError, tool_error_text
from ask_on_slack.core.domain.roles import RoleProfile, ToolKind

SERVER_NAME = "ask-on-slack-mcp"

logger = structlog.get_logger(__name__)

_ARGUMENT_NAMES = {
    ToolKind.ASK: "question",
    ToolKind.CLARIFY: "question",
    ToolKind.ACKNOWLEDGE: "acknowledgement",
}


def tool_definitions(role: RoleProfile) -> list[Tool]:
    """Build the MCP tool list for ``role``."""
    tools = []
    for kind in ToolKind:
        text = role.tool_text(kind)
        argument = _ARGUMENT_NAMES[kind]
        tools.append(
            Tool(
                name=role.tool_name(kind),
                title=text.title,
                description=text.description,
                inputSchema={
                    "type": "object",
                    "properties": {
                        argument: {
                            "type": "string",
                            "description": text.input_description,
                        }
                    },
                    "required": [argument],
                },
            )
        )
    return tools


def _text_result(text: str, *, is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=text)],
        isError=is_error,
    )


async def dispatch_tool(
    orchestrator: AskOrchestrator, name: str, arguments: dict[str, Any] | None
) -> CallToolResult:
    """Run the tool called ``name`` and map the outcome to a tool result."""
    role = orchestrator.role
    arguments = arguments or {}
    handlers = {
        role.tool_name(ToolKind.ASK): (orchestrator.ask, "question"),
        role.tool_name(ToolKind.CLARIFY): (orchestrator.clarify, "question"),
        role.tool_name(ToolKind.ACKNOWLEDGE): (orchestrator.acknowledge, "acknowledgement"),
    }
    if name not in handlers:
        return _text_result(f"Error: Unknown tool: {name}", is_error=True)

    handler, argument = handlers[name]
    logger.info("tool_called", tool=name)
    try:
        text = await handler(arguments.get(argument))
    except AskOnSlackError as exc:
        return _text_result(tool_error_text(exc), is_error=True)
    except Exception as exc:
        logger.exception("tool_error", tool=name, error=str(exc))
        return _text_result(tool_error_text(exc), is_error=True)
    logger.info("tool_completed", tool=name)
    return _text_result(text)


def build_server(orchestrator: AskOrchestrator) -> Server:
    """Create a low-level MCP server exposing the role's tools."""
    server: Server = Server(SERVER_NAME, version=__version__)
    tools = tool_definitions(orchestrator.role)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return tools

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        return await dispatch_tool(orchestrator, name, arguments)

    return server
