"""
Pytest configuration and shared fixtures for certprobe tests.

Provides:
- Throwaway PKI fixtures (see ``tests/fixtures/pki.py``)
- Request and logger fixtures
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from certprobe.core.logger import Logger
from certprobe.models.request import ProbeRequest


pytest_plugins = ["tests.fixtures.pki"]


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


@pytest.fixture
def logger() -> Logger:
    return Logger("certprobe.test")


# ============================================================================
# Request Fixtures
# ============================================================================


@pytest.fixture
def make_request() -> Any:
    """Factory building a ProbeRequest from keyword overrides."""

    def _make(**overrides: Any) -> ProbeRequest:
        values: dict[str, Any] = {"host": "example.com"}
        values.update(overrides)
        return ProbeRequest(**values)

    return _make

