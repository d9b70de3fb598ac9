"""Integration test fixtures: the real app over a per-test SQLite database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from workforce_engine.api.app import create_app
from workforce_engine.api.dependencies import get_clock, get_session_factory


@pytest.fixture
def app(session_factory, clock):
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_clock] = lambda: clock
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Gateway identity headers for a user id and role."""

    def _headers(user_id: str, role: str = "employee", **extra: str) -> dict[str, str]:
        headers = {"X-User-Id": user_id, "X-User-Role": role}
        headers.update(extra)
        return headers

    return _headers
