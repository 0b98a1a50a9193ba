"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any import that might build settings,
so tests never pick up a developer's .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from campus_api.adapters.rate_limit.in_memory import InMemorySlidingWindowLimiter
from campus_api.core.app_factory import create_app
from campus_api.core.config import AppSettings, Settings
from campus_api.core.rate_limit import build_admission_limiter


class FakeClock:
    """Deterministic clock used to drive window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> InMemorySlidingWindowLimiter:
    """Five requests per minute, the reference login policy used in tests."""
    return InMemorySlidingWindowLimiter(limit=5, window_seconds=60, clock=clock)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        app=AppSettings(
            rate_limit_requests=5,
            rate_limit_window_seconds=60,
            rate_limit_register_requests=10,
            rate_limit_register_window_seconds=3600,
        )
    )


@pytest.fixture
def app(test_settings: Settings, clock: FakeClock) -> FastAPI:
    """App with its own limiter driven by the fake clock."""
    return create_app(
        test_settings,
        limiter=build_admission_limiter(test_settings.app, clock=clock),
        configure_logs=False,
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
