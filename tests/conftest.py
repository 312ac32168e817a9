"""Pytest configuration shared across the suite."""

import pytest

import _bootstrap  # noqa: F401  # seeds CANVA_* defaults before the app module is imported


@pytest.fixture
def anyio_backend() -> str:
    """Run AnyIO-marked relay tests on asyncio only."""
    return "asyncio"
