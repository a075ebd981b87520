"""Tests for the health endpoints."""

import pytest
from fastapi.testclient import TestClient

from helpers import FakeGateway

from ask_on_slack import __version__
from ask_on_slack.api.server import create_app
from ask_on_slack.application.factory import build_components
from ask_on_slack.core.domain.settings import Settings


@pytest.fixture
def client():
    settings = Settings()
    return TestClient(create_app(settings, components=build_components(settings)))


def test_health_endpoint(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": __version__, "checks": None}


def test_readiness_without_slack(client) -> None:
    response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"slack": "not configured", "role": "boss", "sessions": "0"}


def test_readiness_with_slack() -> None:
    settings = Settings(
        slack_bot_token="xoxb-1", slack_app_token="xapp-1", slack_channel_id="C1", role="expert"
    )
    components = build_components(settings, gateway=FakeGateway())
    client = TestClient(create_app(settings, components=components))

    checks = client.get("/health/ready").json()["checks"]

    assert checks["slack"] == "configured"
    assert checks["role"] == "expert"


def test_lifespan_closes_gateway_on_shutdown() -> None:
    gateway = FakeGateway()
    settings = Settings(slack_bot_token="xoxb-1", slack_app_token="xapp-1")
    app = create_app(settings, components=build_components(settings, gateway=gateway))

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert gateway.closed is False

    assert gateway.closed is True
