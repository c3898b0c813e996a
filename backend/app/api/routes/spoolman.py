"""Read-only Spoolman passthrough routes."""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from backend.app.api.deps import get_spoolman_client
from backend.app.api.errors import spoolman_error_response
from backend.app.services.spoolman import SpoolmanClient, SpoolmanError, spool_display_name

logger = logging.getLogger(__name__)

router = APIRouter(tags=["spoolman"])


class RemainingFilament(BaseModel):
    """Condensed remaining-weight view of one spool."""

    id: int
    name: str
    remaining_weight: float | None


@router.get("/info")
async def get_spoolman_info(client: SpoolmanClient = Depends(get_spoolman_client)):
    """Spoolman info payload; doubles as a connectivity check."""
    try:
        return await client.get_info()
    except SpoolmanError as e:
        return spoolman_error_response("Failed to fetch Spoolman info", e)


@router.get("/spools")
async def get_spools(
    allow_archived: bool = Query(default=False),
    client: SpoolmanClient = Depends(get_spoolman_client),
):
    """List spools exactly as Spoolman returns them."""
    logger.debug("Fetching spools from %s", client.api_url)
    try:
        return await client.get_spools_payload(allow_archived=allow_archived)
    except SpoolmanError as e:
        return spoolman_error_response("Failed to fetch spools", e)


@router.get("/remaining", response_model=list[RemainingFilament])
async def get_remaining(client: SpoolmanClient = Depends(get_spoolman_client)):
    """Remaining filament per spool."""
    try:
        spools = await client.get_spools()
    except SpoolmanError as e:
        return spoolman_error_response("Failed to fetch remaining filament", e)

    return [
        RemainingFilament(
            id=spool["id"],
            name=spool_display_name(spool),
            remaining_weight=spool.get("remaining_weight"),
        )
        for spool in spools
    ]
