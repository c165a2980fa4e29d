"""Shared test fixtures for pytest.

ENVIRONMENT is forced to `test` before the application is imported so
settings never pick up a developer's `.env` file.
"""

import os
from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


os.environ["ENVIRONMENT"] = "test"

from insight_stream.core.config import get_settings  # noqa: E402
from insight_stream.main import app  # noqa: E402


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> None:
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def mock_client_factory() -> AsyncGenerator[
    Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient], None
]:
    """Build httpx clients backed by a request handler; closed after the test."""
    clients: list[httpx.AsyncClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Async client talking to the FastAPI producer in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
