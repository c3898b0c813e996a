"""Read side of the usage log, optionally joined with Spoolman spool data."""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.usage import UsageRecord
from backend.app.services.spoolman import SpoolmanClient, SpoolmanError

logger = logging.getLogger(__name__)

UNKNOWN = "Unknown"


@dataclass
class SpoolSummary:
    """Spool fields the dashboard shows next to each usage entry."""

    name: str = UNKNOWN
    vendor: str = UNKNOWN
    color_hex: str | None = None
    multi_color_hexes: str | None = None  # comma-separated, as Spoolman stores it
    multi_color_direction: str | None = None


@dataclass
class EnrichedUsage:
    id: int
    spool_id: str
    date: str
    weight: float
    note: str | None
    name: str = UNKNOWN
    vendor: str = UNKNOWN
    color_hex: str | None = None
    multi_color_hexes: str | None = None
    multi_color_direction: str | None = None
    cost: float | None = None  # None means unknown, not free
    spool: SpoolSummary = field(default_factory=SpoolSummary)


def compute_cost(weight: float, spool: dict) -> float | None:
    """Cost of `weight` grams: share of the spool's initial weight times its price.

    Spool-level price and initial weight win over the filament defaults.
    Returns None when either operand is missing.
    """
    filament = spool.get("filament") or {}
    price = spool.get("price")
    if price is None:
        price = filament.get("price")
    initial_weight = spool.get("initial_weight")
    if initial_weight is None:
        initial_weight = filament.get("weight")

    if price is None or not initial_weight:
        return None
    return (weight / initial_weight) * price


def _join_hexes(value) -> str | None:
    if not value:
        return None
    if isinstance(value, str):
        return value
    return ",".join(h.strip() for h in value if h and h.strip()) or None


def _enrich(record: UsageRecord, spool: dict | None) -> EnrichedUsage:
    usage = EnrichedUsage(
        id=record.id,
        spool_id=record.spool_id,
        date=record.used_at,
        weight=record.weight,
        note=record.note,
    )
    if spool is None:
        return usage

    filament = spool.get("filament") or {}
    usage.name = filament.get("name") or UNKNOWN
    usage.vendor = (filament.get("vendor") or {}).get("name") or UNKNOWN
    usage.color_hex = filament.get("color_hex")
    usage.multi_color_hexes = _join_hexes(filament.get("multi_color_hexes"))
    usage.multi_color_direction = filament.get("multi_color_direction")
    usage.cost = compute_cost(record.weight, spool)
    usage.spool = SpoolSummary(
        name=usage.name,
        vendor=usage.vendor,
        color_hex=usage.color_hex,
        multi_color_hexes=usage.multi_color_hexes,
        multi_color_direction=usage.multi_color_direction,
    )
    return usage


async def _fetch_usage(db: AsyncSession, spool_id: str | None = None) -> list[UsageRecord]:
    query = select(UsageRecord)
    if spool_id is not None:
        query = query.where(UsageRecord.spool_id == str(spool_id))
    query = query.order_by(UsageRecord.used_at.desc(), UsageRecord.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_all_usage(db: AsyncSession, client: SpoolmanClient) -> list[EnrichedUsage]:
    """All usage records, newest first, decorated with spool name, vendor, color and cost.

    If Spoolman cannot be queried the records are still returned, with
    "Unknown" names and no cost.
    """
    records = await _fetch_usage(db)
    if not records:
        return []

    try:
        spools = await client.get_spools(allow_archived=True)
    except SpoolmanError as e:
        logger.warning("Spoolman unavailable, returning usage without spool data: %s", e)
        return [_enrich(record, None) for record in records]

    by_id = {str(spool.get("id")): spool for spool in spools}
    return [_enrich(record, by_id.get(record.spool_id)) for record in records]


async def list_usage_for_spool(db: AsyncSession, spool_id: str | int) -> list[dict]:
    """Usage history of one spool, newest first. Note is omitted when empty."""
    records = await _fetch_usage(db, str(spool_id))
    history = []
    for record in records:
        entry = {"date": record.used_at, "weight": record.weight}
        if record.note:
            entry["note"] = record.note
        history.append(entry)
    return history
