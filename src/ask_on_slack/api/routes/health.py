from fastapi import APIRouter, Request
from pydantic import BaseModel

from ask_on_slack import __version__

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    checks: dict[str, str] | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness probe - is the service running?"""
    return HealthResponse(status="healthy", version=__version__)


@router.get("/health/ready", response_model=HealthResponse)
async def readiness_check(request: Request) -> HealthResponse:
    """Readiness probe.

    Reports whether Slack credentials are configured and how many MCP
    sessions are live. An unconfigured server is still ready: its tools
    answer with a configuration error.
    """
    components = request.app.state.components
    registry = request.app.state.registry
    checks = {
        "slack": "configured" if components.slack_configured else "not configured",
        "role": components.role.name,
        "sessions": str(len(registry)),
    }
    return HealthResponse(status="ready", version=__version__, checks=checks)
