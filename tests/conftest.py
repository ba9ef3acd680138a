"""
Test configuration and fixtures.
Each test gets its own storage root under tmp_path.
"""
import pytest
from typing import AsyncGenerator

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from httpupload.config import Settings, get_settings
from httpupload.main import create_app
from httpupload.storage.write_once import WriteOnceStore


SECRET = "s3cr3t"


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Forget settings loaded from the environment between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage_root(tmp_path):
    """Storage directory for a single test."""
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture
def settings(storage_root) -> Settings:
    """Settings pointing at the per-test storage root."""
    return Settings(secret=SECRET, storage_path=storage_root)


@pytest.fixture
def store(storage_root) -> WriteOnceStore:
    """Write-once store on the per-test storage root."""
    return WriteOnceStore(storage_root)


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    """Upload application built from the test settings."""
    return create_app(settings)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
