"""
tests/integration/conftest.py
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Integration test configuration - skip unless INTEGRATION_TESTS=1.

Usage:
    # Run only unit tests (default, CI-safe)
    pytest -q

    # Run integration tests locally
    INTEGRATION_TESTS=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os
import time
from typing import AsyncIterator, Generator

import httpx
import pytest

from tailwatch.constants import USER_AGENT


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip all integration tests unless INTEGRATION_TESTS=1."""
    if os.getenv("INTEGRATION_TESTS"):
        return

    skip_marker = pytest.mark.skip(
        reason="Integration tests disabled (set INTEGRATION_TESTS=1 to enable)"
    )
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(skip_marker)


@pytest.fixture
def polite_delay() -> Generator[None, None, None]:
    """Wait after each test so live APIs never see a burst from us."""
    yield
    time.sleep(1.0)


@pytest.fixture
async def live_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        timeout=30.0, headers={"User-Agent": USER_AGENT}
    ) as client:
        yield client
