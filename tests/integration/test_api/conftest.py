"""App wired to the seeded in-memory database through dependency overrides."""

from collections.abc import AsyncGenerator
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from election_api.core.cache import InMemoryResultCache
from election_api.core.config import Settings, get_settings
from election_api.core.dependencies import get_async_session, get_cache
from election_api.main import create_app


@pytest.fixture
def app(registry, settings: Settings, result_cache: InMemoryResultCache) -> FastAPI:
    with patch("election_api.main.get_settings", return_value=settings):
        app = create_app()

    async def override_session():  # type: ignore[no-untyped-def]
        yield registry

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_cache] = lambda: result_cache
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
