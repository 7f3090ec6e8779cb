"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from faceroster.core.config import get_settings
from faceroster.main import app
from faceroster.services.identity.merge_suggester import get_merge_suggester
from faceroster.services.identity.similarity import get_similarity_scorer


@pytest.fixture
def anyio_backend() -> str:
    """Configure anyio backend for async tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def clear_singletons() -> None:
    """Reset cached settings and service singletons between tests."""
    get_settings.cache_clear()
    get_merge_suggester.cache_clear()
    get_similarity_scorer.cache_clear()


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client.

    Yields:
        Configured AsyncClient for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac
