"""Infer print jobs from the usage feed.

Usage rows carry no job identifier. Rows logged in the same local clock hour
with the same note are treated as one print job. This is an approximation and
is kept as is: the dashboard expects exactly this grouping.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo

from backend.app.services.usage_aggregator import EnrichedUsage


@dataclass
class PrintJob:
    job_key: str
    date: str  # date of the most recent member
    note: str
    entries: list[EnrichedUsage] = field(default_factory=list)
    total_weight: float = 0.0
    total_cost: float = 0.0


def _parse_date(value: str) -> datetime:
    if value.endswith("Z"):
        # Rows written by JavaScript clients use toISOString()
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        # Naive timestamps are stored as UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def job_key(usage: EnrichedUsage, tz: tzinfo | None = None) -> tuple[int, int, int, int, str]:
    """Grouping key: (year, month, day, hour) in local time plus the note."""
    local = _parse_date(usage.date).astimezone(tz)
    return (local.year, local.month, local.day, local.hour, usage.note or "")


def group_print_jobs(usages: list[EnrichedUsage], tz: tzinfo | None = None) -> list[PrintJob]:
    """Group usage entries into print jobs.

    Args:
        usages: Usage entries, newest first.
        tz: Time zone used for the hour buckets; None means the server's local zone.

    Returns:
        Jobs sorted newest first. Jobs with the same date keep the order in
        which they were first encountered.
    """
    groups: dict[tuple[int, int, int, int, str], PrintJob] = {}

    for usage in usages:
        key = job_key(usage, tz)
        job = groups.get(key)
        if job is None:
            year, month, day, hour, note = key
            job = PrintJob(
                job_key=f"{year:04d}-{month:02d}-{day:02d}-{hour:02d}|{note}",
                date=usage.date,
                note=note,
            )
            groups[key] = job

        job.entries.append(usage)
        job.total_weight += usage.weight or 0
        job.total_cost += usage.cost or 0

    return sorted(groups.values(), key=lambda job: _parse_date(job.date), reverse=True)
