"""HTTP deployment: MCP over Streamable HTTP, many concurrent sessions."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ask_on_slack import __version__
from ask_on_slack.api.mcp_server import build_server
from ask_on_slack.api.routes import health
from ask_on_slack.api.session_registry import SessionRegistry
from ask_on_slack.application.factory import AskComponents, build_components
from ask_on_slack.core.domain.settings import Settings

logger = structlog.get_logger()

MCP_PATH = "/mcp"


def create_app(
    settings: Settings,
    *,
    components: AskComponents | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Validated runtime settings.
        components: Optional pre-built engine (tests).

    Returns:
        Configured FastAPI application. ``POST|GET|DELETE /mcp`` is served
        by the session registry; ``/health`` and ``/health/ready`` report
        status.
    """
    components = components or build_components(settings)
    registry = SessionRegistry(
        lambda: build_server(components.orchestrator),
        json_response=settings.json_response,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "fastapi.startup",
            message="Ask on Slack MCP HTTP server starting...",
            path=MCP_PATH,
            role=components.role.name,
            slack_configured=components.slack_configured,
        )
        try:
            yield
        finally:
            logger.info("fastapi.shutdown", sessions=len(registry))
            await registry.close_all()
            await components.aclose()
            logger.info("fastapi.shutdown_complete")

    app = FastAPI(
        title="Ask on Slack MCP",
        description="MCP server to ask humans on Slack from AI agents",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.components = components
    app.state.registry = registry

    app.include_router(health.router, tags=["health"])
    app.add_route(
        MCP_PATH,
        registry,
        methods=["GET", "POST", "DELETE"],
        include_in_schema=False,
    )
    return app


def run_http(settings: Settings) -> None:
    """Serve the HTTP app with uvicorn until interrupted."""
    import uvicorn

    app = create_app(settings)
    logger.info(
        "http.listening",
        host=settings.host,
        port=settings.port,
        path=MCP_PATH,
    )
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        log_level=settings.log_level.lower(),
    )
