"""Shared test fixtures for the Spool Usage Tracker backend tests."""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest

# IMPORTANT: Set environment variables BEFORE any app imports
# This must happen before settings/config are loaded
os.environ["LOG_TO_FILE"] = "false"
os.environ["DEBUG"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

# Ensure settings use our env vars - import and override before database import
from backend.app.core.config import settings  # noqa: E402

settings.log_to_file = False

from backend.app.core.database import Base  # noqa: E402

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    # Import all models to register them
    from backend.app.models import settings, usage  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


# ============================================================================
# Mock External Services
# ============================================================================


def make_spool(
    spool_id: int = 1,
    remaining_weight: float | None = 800.0,
    initial_weight: float | None = 1000.0,
    price: float | None = None,
    filament_price: float | None = 25.0,
    name: str = "PLA Basic",
    vendor: str | None = "Bambu Lab",
    color_hex: str | None = "FF0000",
    multi_color_hexes: str | None = None,
    archived: bool = False,
) -> dict:
    """Build a spool payload shaped like Spoolman's /api/v1/spool responses."""
    filament = {
        "id": spool_id * 10,
        "name": name,
        "vendor": {"id": 1, "name": vendor} if vendor else None,
        "material": "PLA",
        "price": filament_price,
        "weight": 1000.0,
        "color_hex": color_hex,
    }
    if multi_color_hexes:
        filament["multi_color_hexes"] = multi_color_hexes
        filament["multi_color_direction"] = "coaxial"
    return {
        "id": spool_id,
        "filament": filament,
        "remaining_weight": remaining_weight,
        "initial_weight": initial_weight,
        "used_weight": (initial_weight or 0) - (remaining_weight or 0),
        "price": price,
        "archived": archived,
        "last_used": None,
    }


@pytest.fixture
def spool_factory():
    """Factory for Spoolman spool payloads."""
    return make_spool


@pytest.fixture
def mock_spoolman_client():
    """Mock SpoolmanClient with one 800g spool (ID 1)."""
    spool = make_spool()
    mock_client = MagicMock()
    mock_client.base_url = "http://localhost:7912"
    mock_client.api_url = "http://localhost:7912/api/v1"
    mock_client.get_info = AsyncMock(return_value={"version": "0.22.1", "debug_mode": False})
    mock_client.get_spools = AsyncMock(return_value=[spool])
    mock_client.get_spools_payload = AsyncMock(return_value=[spool])
    mock_client.get_spool = AsyncMock(return_value=spool)
    mock_client.patch_spool = AsyncMock(side_effect=lambda spool_id, fields: {**spool, **fields})
    mock_client.close = AsyncMock()
    return mock_client


@pytest.fixture
def settings_store():
    """Fresh settings store with the default configuration."""
    from backend.app.services.settings_store import SettingsStore

    return SettingsStore(spoolman_url="http://localhost:7912", flow_compensation_value=1.5)


@pytest.fixture
async def async_client(test_engine, settings_store, mock_spoolman_client) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client with the database and Spoolman replaced."""
    from backend.app.api.deps import get_spoolman_client
    from backend.app.core.database import get_db
    from backend.app.main import app

    # Create a new session maker for the test engine
    test_async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with test_async_session() as session:
            yield session

    async def override_get_spoolman_client():
        yield mock_spoolman_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_spoolman_client] = override_get_spoolman_client
    previous_store = app.state.settings_store
    app.state.settings_store = settings_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.state.settings_store = previous_store
    app.dependency_overrides.clear()
