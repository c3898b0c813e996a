"""Record filament usage: update Spoolman first, then append to the local usage log.

Spoolman is the system of record. A usage row is only written after Spoolman
accepted the new remaining weight, so a failed upstream call never leaves a
local row behind. The reverse case (Spoolman updated, local insert failed) is
reported as UsageLogWriteError and is not reconciled automatically.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.usage import UsageRecord
from backend.app.services.settings_store import StorageError
from backend.app.services.spoolman import SpoolmanClient, SpoolmanError

logger = logging.getLogger(__name__)


class UsageLogWriteError(StorageError):
    """Spoolman was updated but the local usage row could not be written."""

    def __init__(self, spool_id: str, weight: float):
        super().__init__(f"Spoolman updated for spool {spool_id} but the usage record could not be saved")
        self.spool_id = spool_id
        self.weight = weight


@dataclass
class UsageOutcome:
    record: UsageRecord
    was_emptied: bool  # spool would have gone below zero
    remaining_weight: float  # value sent to Spoolman


async def record_usage(
    db: AsyncSession,
    client: SpoolmanClient,
    spool_id: str | int,
    weight: float,
    note: str | None = None,
    now: datetime | None = None,
) -> UsageOutcome:
    """Consume `weight` grams from a spool and log it.

    Args:
        db: Session used for the usage log insert.
        client: Spoolman client bound to the current configuration.
        spool_id: Spoolman spool ID.
        weight: Grams used. Not bounded; values above the remaining weight
            empty the spool.
        note: Optional free-text note, usually the print job name.
        now: Timestamp for both the Spoolman update and the log row.

    Raises:
        SpoolNotFoundError: The spool does not exist. Nothing is written.
        SpoolmanError: Spoolman is unreachable or rejected the update. Nothing
            is written locally.
        UsageLogWriteError: Spoolman was updated but the local insert failed.
    """
    now = now or datetime.now(timezone.utc)
    used_at = now.isoformat()
    spool_id = str(spool_id)

    spool = await client.get_spool(spool_id)
    current = spool.get("remaining_weight")
    if current is None:
        raise SpoolmanError(f"Spool {spool_id} has no remaining weight in Spoolman")

    new_remaining = float(current) - weight
    clamped = max(0.0, new_remaining)
    logger.info(
        "Spool %s: remaining %.1fg, used %.1fg, new remaining %.1fg%s",
        spool_id,
        current,
        weight,
        clamped,
        " (emptied)" if new_remaining < 0 else "",
    )

    await client.patch_spool(spool_id, {"remaining_weight": clamped, "last_used": used_at})

    record = UsageRecord(spool_id=spool_id, used_at=used_at, weight=weight, note=note or None)
    try:
        db.add(record)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to save usage for spool %s after Spoolman update: %s", spool_id, e)
        raise UsageLogWriteError(spool_id, weight) from e

    return UsageOutcome(record=record, was_emptied=new_remaining < 0, remaining_weight=clamped)


@dataclass
class JobUsageEntry:
    spool_id: str
    weight: float


@dataclass
class ItemSuccess:
    spool_id: str
    weight: float  # weight sent, compensation included
    base_weight: float
    was_emptied: bool


@dataclass
class ItemFailure:
    spool_id: str
    weight: float
    error: str
    upstream_updated: bool = False


@dataclass
class JobUsageResult:
    succeeded: list[ItemSuccess] = field(default_factory=list)
    failed: list[ItemFailure] = field(default_factory=list)

    @property
    def emptied(self) -> list[str]:
        return [item.spool_id for item in self.succeeded if item.was_emptied]

    @property
    def total_weight(self) -> float:
        return round(sum(item.weight for item in self.succeeded), 1)


def compensated_weight(base_weight: float, flow_compensation: float | None) -> float:
    """Add the per-filament flow compensation, rounded to 0.1 g."""
    if not flow_compensation:
        return round(base_weight, 1)
    return round(base_weight + flow_compensation, 1)


async def record_job_usage(
    db: AsyncSession,
    client: SpoolmanClient,
    entries: list[JobUsageEntry],
    note: str | None = None,
    flow_compensation: float | None = None,
) -> JobUsageResult:
    """Record every filament of one print job, one after another.

    Items are independent: a failure is reported for that item and the
    remaining items are still recorded.
    """
    result = JobUsageResult()
    for entry in entries:
        weight = compensated_weight(entry.weight, flow_compensation)
        try:
            outcome = await record_usage(db, client, entry.spool_id, weight, note)
        except UsageLogWriteError as e:
            result.failed.append(ItemFailure(entry.spool_id, weight, str(e), upstream_updated=True))
        except (SpoolmanError, StorageError) as e:
            error = str(e)
            if isinstance(e, SpoolmanError) and e.detail and e.detail != error:
                error = f"{error}: {e.detail}"
            result.failed.append(ItemFailure(entry.spool_id, weight, error))
        else:
            result.succeeded.append(
                ItemSuccess(entry.spool_id, weight, entry.weight, outcome.was_emptied)
            )

    logger.info(
        "Recorded job usage: %d succeeded, %d failed, %.1fg total",
        len(result.succeeded),
        len(result.failed),
        result.total_weight,
    )
    return result
