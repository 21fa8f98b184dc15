"""
Banana API Tests - Test Configuration.

Provides pytest fixtures and environment setup for testing the service.
The environment is set before the application modules are imported so the
module-level settings pick it up.
"""

import os
import random
from datetime import date
from typing import Any, Iterator

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("ENABLE_TRACING", "false")
# Requests past the strict limit are rejected instead of waiting a full window
os.environ.setdefault("RATE_LIMIT_STRICT_QUEUE_LIMIT", "0")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from banana_api.app import app  # noqa: E402
from banana_api.rate_limiter import rate_limiters  # noqa: E402


@pytest.fixture(autouse=True)
def reset_rate_limiters() -> Iterator[None]:
    """Give every test fresh rate limit windows."""
    rate_limiters.reset()
    yield
    rate_limiters.reset()


@pytest.fixture
def client() -> Iterator[TestClient]:
    """
    Test client for the application.

    Server exceptions are turned into 500 responses, as a real server would.
    """
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for reproducible generated data."""
    return random.Random(20251019)


@pytest.fixture
def reference_date() -> date:
    """Fixed "today" for forecast tests."""
    return date(2025, 10, 19)


def pytest_configure(config: Any) -> None:
    """
    Configure pytest with custom markers.

    Registers custom markers for categorizing tests.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test",
    )
    config.addinivalue_line(
        "markers",
        "unit: mark test as unit test",
    )
