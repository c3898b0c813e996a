"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from backend.app.core.config import settings as app_settings
from backend.app.services.settings_store import RuntimeConfig, SettingsStore
from backend.app.services.spoolman import SpoolmanClient


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def get_runtime_config(store: SettingsStore = Depends(get_settings_store)) -> RuntimeConfig:
    """One configuration snapshot per request."""
    return store.snapshot()


async def get_spoolman_client(
    config: RuntimeConfig = Depends(get_runtime_config),
) -> AsyncGenerator[SpoolmanClient, None]:
    """Spoolman client bound to this request's configuration snapshot."""
    client = SpoolmanClient(config.spoolman_url, timeout=app_settings.spoolman_timeout)
    try:
        yield client
    finally:
        await client.close()
