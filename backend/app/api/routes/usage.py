"""Filament usage routes: record consumption and browse the usage log."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.api.deps import get_runtime_config, get_spoolman_client
from backend.app.api.errors import error_response, spoolman_error_response
from backend.app.core.database import get_db
from backend.app.schemas.usage import (
    EnrichedUsageResponse,
    JobUsageCreate,
    JobUsageResponse,
    PrintJobResponse,
    SpoolUsageEntry,
    UsageCreate,
    UsageCreateResult,
)
from backend.app.services.print_jobs import group_print_jobs
from backend.app.services.settings_store import RuntimeConfig
from backend.app.services.spoolman import SpoolmanClient, SpoolmanError, SpoolNotFoundError
from backend.app.services.usage_aggregator import list_all_usage, list_usage_for_spool
from backend.app.services.usage_recorder import (
    JobUsageEntry,
    UsageLogWriteError,
    record_job_usage,
    record_usage,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/usage", tags=["usage"])


@router.post("", response_model=UsageCreateResult)
async def create_usage(
    usage: UsageCreate,
    db: AsyncSession = Depends(get_db),
    client: SpoolmanClient = Depends(get_spoolman_client),
):
    """Subtract used filament from a Spoolman spool and log it locally."""
    logger.info("Recording %.1fg on spool %s (note=%r)", usage.weight, usage.spool_id, usage.note)
    try:
        outcome = await record_usage(db, client, usage.spool_id, usage.weight, usage.note)
    except SpoolNotFoundError as e:
        return spoolman_error_response(f"Spool {usage.spool_id} not found in Spoolman", e)
    except SpoolmanError as e:
        return spoolman_error_response("Failed to update Spoolman", e)
    except UsageLogWriteError as e:
        return error_response(500, "Failed to save to local DB", str(e), upstreamUpdated=True)

    return UsageCreateResult(was_emptied=outcome.was_emptied)


@router.post("/batch", response_model=JobUsageResponse)
async def create_job_usage(
    job: JobUsageCreate,
    db: AsyncSession = Depends(get_db),
    client: SpoolmanClient = Depends(get_spoolman_client),
    config: RuntimeConfig = Depends(get_runtime_config),
):
    """Record every filament of one print job.

    Filaments are recorded one at a time; each one succeeds or fails on its own.
    """
    flow_compensation = config.flow_compensation_value if job.flow_compensation else None
    result = await record_job_usage(
        db,
        client,
        [JobUsageEntry(entry.spool_id, entry.weight) for entry in job.entries],
        note=job.note,
        flow_compensation=flow_compensation,
    )
    return JobUsageResponse(
        success=not result.failed,
        succeeded=[asdict(item) for item in result.succeeded],
        failed=[asdict(item) for item in result.failed],
        emptied=result.emptied,
        total_weight=result.total_weight,
        flow_compensation_value=flow_compensation,
    )


@router.get("", response_model=list[EnrichedUsageResponse])
async def get_all_usage(
    db: AsyncSession = Depends(get_db),
    client: SpoolmanClient = Depends(get_spoolman_client),
):
    """All usage, newest first, with spool name, vendor, color and cost."""
    try:
        return await list_all_usage(db, client)
    except SQLAlchemyError as e:
        logger.error("Failed to read usage log: %s", e)
        return error_response(500, "Failed to read usage history", str(e))


@router.get("/jobs", response_model=list[PrintJobResponse])
async def get_print_jobs(
    db: AsyncSession = Depends(get_db),
    client: SpoolmanClient = Depends(get_spoolman_client),
):
    """Usage grouped into print jobs (same hour and same note)."""
    try:
        usages = await list_all_usage(db, client)
    except SQLAlchemyError as e:
        logger.error("Failed to read usage log: %s", e)
        return error_response(500, "Failed to read usage history", str(e))
    return group_print_jobs(usages)


@router.get("/{spool_id}", response_model=list[SpoolUsageEntry], response_model_exclude_none=True)
async def get_spool_usage(spool_id: str, db: AsyncSession = Depends(get_db)):
    """Usage history of one spool, newest first."""
    try:
        return await list_usage_for_spool(db, spool_id)
    except SQLAlchemyError as e:
        logger.error("Failed to read usage for spool %s: %s", spool_id, e)
        return error_response(500, "Failed to read usage history", str(e))
