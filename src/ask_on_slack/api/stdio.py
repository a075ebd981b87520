"""stdio deployment: one MCP session over stdin/stdout."""

from __future__ import annotations

import structlog
from mcp.server.stdio import stdio_server

from ask_on_slack.api.mcp_server import build_server
from ask_on_slack.application.factory import build_components
from ask_on_slack.core.domain.settings import Settings

logger = structlog.get_logger(__name__)


async def run_stdio(settings: Settings) -> None:
    """Serve the tools over stdio until the client disconnects."""
    components = build_components(settings)
    try:
        server = build_server(components.orchestrator)
        logger.info("stdio.starting", role=components.role.name)
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await components.aclose()
        logger.info("stdio.stopped")
