"""Runtime configuration backed by the settings table.

The store keeps an immutable RuntimeConfig snapshot in memory. Requests read
one snapshot and use it for their whole lifetime; updates write the database
first and only then swap the snapshot.
"""

import logging
from dataclasses import dataclass, replace

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.settings import Settings
from backend.app.services.spoolman import build_api_url, normalize_base_url

logger = logging.getLogger(__name__)

SPOOLMAN_URL_KEY = "spoolman_url"
FLOW_COMPENSATION_KEY = "flow_compensation_value"


class StorageError(Exception):
    """A local database read or write failed."""


@dataclass(frozen=True)
class RuntimeConfig:
    spoolman_url: str
    flow_compensation_value: float

    @property
    def spoolman_api_url(self) -> str:
        return build_api_url(self.spoolman_url)


async def get_setting(db: AsyncSession, key: str) -> str | None:
    """Get a single setting value by key."""
    result = await db.execute(select(Settings).where(Settings.key == key))
    setting = result.scalar_one_or_none()
    return setting.value if setting else None


async def set_setting(db: AsyncSession, key: str, value: str) -> None:
    """Set a single setting value."""
    result = await db.execute(select(Settings).where(Settings.key == key))
    setting = result.scalar_one_or_none()

    if setting:
        setting.value = value
    else:
        setting = Settings(key=key, value=value)
        db.add(setting)


class SettingsStore:
    """Holds the current RuntimeConfig and persists changes to it."""

    def __init__(self, spoolman_url: str, flow_compensation_value: float):
        self._current = RuntimeConfig(
            spoolman_url=normalize_base_url(spoolman_url),
            flow_compensation_value=flow_compensation_value,
        )

    def snapshot(self) -> RuntimeConfig:
        return self._current

    async def load(self, db: AsyncSession) -> RuntimeConfig:
        """Replace the defaults with whatever the settings table holds."""
        config = self._current
        url = await get_setting(db, SPOOLMAN_URL_KEY)
        if url:
            config = replace(config, spoolman_url=normalize_base_url(url))
            logger.info("Loaded Spoolman URL from DB: %s", config.spoolman_url)

        flow = await get_setting(db, FLOW_COMPENSATION_KEY)
        if flow:
            try:
                config = replace(config, flow_compensation_value=float(flow))
            except ValueError:
                logger.warning("Ignoring invalid flow compensation value in DB: %r", flow)

        self._current = config
        return config

    async def update(
        self,
        db: AsyncSession,
        spoolman_url: str | None = None,
        flow_compensation_value: float | None = None,
    ) -> RuntimeConfig:
        """Persist the given values and publish the new snapshot.

        Raises:
            StorageError: If the database write fails. The in-memory snapshot
                is left untouched in that case.
        """
        config = self._current
        if spoolman_url is not None:
            config = replace(config, spoolman_url=normalize_base_url(spoolman_url))
        if flow_compensation_value is not None:
            config = replace(config, flow_compensation_value=flow_compensation_value)

        try:
            if spoolman_url is not None:
                await set_setting(db, SPOOLMAN_URL_KEY, config.spoolman_url)
            if flow_compensation_value is not None:
                await set_setting(db, FLOW_COMPENSATION_KEY, str(config.flow_compensation_value))
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Failed to save settings: %s", e)
            raise StorageError("Failed to save settings") from e

        self._current = config
        logger.info(
            "Settings updated: spoolman_url=%s flow_compensation_value=%s",
            config.spoolman_url,
            config.flow_compensation_value,
        )
        return config
