"""Test configuration and shared fixtures."""

from __future__ import annotations

import pytest
import structlog

from helpers import FakeClock, FakeGateway


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Undo logging configuration done by CLI and logging tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
