"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit and integration tests.
"""

import os

# Must be set before naotimes_og configures logging on import.
os.environ.setdefault("ENVIRONMENT", "testing")

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from pydantic_settings import SettingsConfigDict

from naotimes_og.api.dependencies import build_app_state
from naotimes_og.api.main import create_app
from naotimes_og.config.settings import Settings
from naotimes_og.core.telemetry.dispatcher import TelemetryDispatcher

from tests.utils.mocks import FakeEngineFactory, RecordingSessionFactory


class TestSettings(Settings):
    """Test-specific settings."""

    __test__ = False

    environment: str = "testing"
    debug: bool = True
    server_hostname: str = "http://render.test"
    plausible_url: str = "https://plausible.test/"
    plausible_domain: str = "naoti.me"
    log_level: str = "DEBUG"

    model_config = SettingsConfigDict(env_file=None, extra="ignore")


@pytest.fixture
def test_settings() -> TestSettings:
    return TestSettings()


@pytest.fixture
def disabled_settings() -> TestSettings:
    """Settings with the telemetry destination unset."""
    return TestSettings(plausible_url="", plausible_domain="")


@pytest.fixture
def engine_factory() -> FakeEngineFactory:
    return FakeEngineFactory()


@pytest.fixture
def session_factory() -> RecordingSessionFactory:
    return RecordingSessionFactory()


@pytest.fixture
def dispatcher(test_settings, session_factory) -> TelemetryDispatcher:
    return TelemetryDispatcher(test_settings, session_factory=session_factory)


@pytest.fixture
def client(test_settings, engine_factory, session_factory) -> Generator[TestClient, None, None]:
    """Client over an app wired with the fake engine and recording sessions."""
    state = build_app_state(
        test_settings, engine_factory=engine_factory, session_factory=session_factory
    )
    with TestClient(create_app(state)) as test_client:
        yield test_client
