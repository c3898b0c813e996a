"""Unit tests for the settings-backed runtime configuration."""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from backend.app.services.settings_store import (
    FLOW_COMPENSATION_KEY,
    SPOOLMAN_URL_KEY,
    SettingsStore,
    StorageError,
    get_setting,
    set_setting,
)


class TestSettingsStore:
    def test_defaults_are_normalized(self):
        store = SettingsStore(spoolman_url="http://h:1/api/v1/", flow_compensation_value=1.5)

        config = store.snapshot()

        assert config.spoolman_url == "http://h:1"
        assert config.spoolman_api_url == "http://h:1/api/v1"
        assert config.flow_compensation_value == 1.5

    @pytest.mark.asyncio
    async def test_load_without_rows_keeps_defaults(self, db_session, settings_store):
        config = await settings_store.load(db_session)
        assert config.spoolman_url == "http://localhost:7912"
        assert config.flow_compensation_value == 1.5

    @pytest.mark.asyncio
    async def test_load_from_database(self, db_session, settings_store):
        await set_setting(db_session, SPOOLMAN_URL_KEY, "http://spoolman.lan:7912/api")
        await set_setting(db_session, FLOW_COMPENSATION_KEY, "2.25")
        await db_session.commit()

        config = await settings_store.load(db_session)

        assert config.spoolman_url == "http://spoolman.lan:7912"
        assert config.flow_compensation_value == 2.25
        assert settings_store.snapshot() is config

    @pytest.mark.asyncio
    async def test_load_ignores_invalid_flow_value(self, db_session, settings_store):
        await set_setting(db_session, FLOW_COMPENSATION_KEY, "lots")
        await db_session.commit()

        config = await settings_store.load(db_session)

        assert config.flow_compensation_value == 1.5

    @pytest.mark.asyncio
    async def test_update_persists_and_swaps_snapshot(self, db_session, settings_store):
        before = settings_store.snapshot()

        config = await settings_store.update(db_session, spoolman_url="http://h:1/api/v1")

        assert config.spoolman_url == "http://h:1"
        assert config.flow_compensation_value == 1.5
        assert settings_store.snapshot() is config
        assert before.spoolman_url == "http://localhost:7912"
        assert await get_setting(db_session, SPOOLMAN_URL_KEY) == "http://h:1"
        assert await get_setting(db_session, FLOW_COMPENSATION_KEY) is None

    @pytest.mark.asyncio
    async def test_update_overwrites_existing_row(self, db_session, settings_store):
        await settings_store.update(db_session, flow_compensation_value=1.0)
        await settings_store.update(db_session, flow_compensation_value=3.0)

        assert await get_setting(db_session, FLOW_COMPENSATION_KEY) == "3.0"

    @pytest.mark.asyncio
    async def test_failed_write_keeps_old_snapshot(self, db_session, settings_store):
        failing_commit = AsyncMock(side_effect=OperationalError("UPDATE", {}, Exception("database is locked")))

        with patch.object(db_session, "commit", failing_commit):
            with pytest.raises(StorageError):
                await settings_store.update(db_session, spoolman_url="http://other:1")

        assert settings_store.snapshot().spoolman_url == "http://localhost:7912"
