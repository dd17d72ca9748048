"""Test configuration."""

import pytest

from website.core.logging import configure_logging

pytest_plugins: list[str] = [
    "tests.fixtures.content",
]


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    configure_logging(testing=True, level="debug")
