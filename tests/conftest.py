"""Shared pytest configuration."""

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # The package is built on asyncio primitives; run anyio tests on asyncio only.
    return "asyncio"
