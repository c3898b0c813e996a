import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_runtime_config, get_settings_store
from backend.app.api.errors import error_response
from backend.app.core.database import get_db
from backend.app.schemas.settings import AppConfig, AppConfigUpdate, AppConfigUpdateResult
from backend.app.services.settings_store import RuntimeConfig, SettingsStore, StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/config", tags=["settings"])


@router.get("", response_model=AppConfig)
async def get_config(config: RuntimeConfig = Depends(get_runtime_config)):
    """Get the Spoolman URL and flow compensation value."""
    return AppConfig(
        spoolman_url=config.spoolman_url,
        flow_compensation_value=config.flow_compensation_value,
    )


@router.post("", response_model=AppConfigUpdateResult)
async def update_config(
    update: AppConfigUpdate,
    db: AsyncSession = Depends(get_db),
    store: SettingsStore = Depends(get_settings_store),
):
    """Update the Spoolman URL and/or flow compensation value.

    A trailing /api or /api/v1 on the URL is dropped before saving.
    """
    logger.info("POST /api/config: %s", update.model_dump(exclude_unset=True))
    try:
        config = await store.update(
            db,
            spoolman_url=update.spoolman_url,
            flow_compensation_value=update.flow_compensation_value,
        )
    except StorageError as e:
        return error_response(500, str(e))

    return AppConfigUpdateResult(
        spoolman_url=config.spoolman_url,
        flow_compensation_value=config.flow_compensation_value,
    )
