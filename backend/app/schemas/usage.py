from typing import Annotated

from pydantic import BaseModel, BeforeValidator, Field


def _coerce_spool_id(value):
    # The dashboard sends IDs from <select> values, so both forms occur
    if isinstance(value, bool):
        raise ValueError("spool_id must be a non-empty string or an integer")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    raise ValueError("spool_id must be a non-empty string or an integer")


SpoolId = Annotated[str, BeforeValidator(_coerce_spool_id)]


class UsageCreate(BaseModel):
    spool_id: SpoolId
    weight: float = Field(allow_inf_nan=False, description="Grams used")
    note: str | None = None


class UsageCreateResult(BaseModel):
    success: bool = True
    was_emptied: bool = Field(serialization_alias="wasEmptied")


class SpoolUsageEntry(BaseModel):
    date: str
    weight: float
    note: str | None = None


class SpoolSummaryResponse(BaseModel):
    name: str
    vendor: str
    color_hex: str | None = None
    multi_color_hexes: str | None = Field(default=None, description="Comma-separated hex colors")
    multi_color_direction: str | None = None

    class Config:
        from_attributes = True


class EnrichedUsageResponse(BaseModel):
    id: int
    spool_id: str
    date: str
    weight: float
    note: str | None = None
    name: str
    vendor: str
    color_hex: str | None = None
    multi_color_hexes: str | None = None
    multi_color_direction: str | None = None
    cost: float | None = None
    spool: SpoolSummaryResponse

    class Config:
        from_attributes = True


class PrintJobResponse(BaseModel):
    job_key: str = Field(serialization_alias="jobKey")
    date: str
    note: str
    entries: list[EnrichedUsageResponse]
    total_weight: float = Field(serialization_alias="totalWeight")
    total_cost: float = Field(serialization_alias="totalCost")

    class Config:
        from_attributes = True


class JobUsageEntryCreate(BaseModel):
    spool_id: SpoolId
    weight: float = Field(allow_inf_nan=False)


class JobUsageCreate(BaseModel):
    """All filaments consumed by one print job."""

    entries: list[JobUsageEntryCreate] = Field(min_length=1)
    note: str | None = None
    flow_compensation: bool = Field(default=False, description="Add the configured grams to every filament")


class JobUsageItemResult(BaseModel):
    spool_id: str
    weight: float
    base_weight: float
    was_emptied: bool

    class Config:
        from_attributes = True


class JobUsageItemFailure(BaseModel):
    spool_id: str
    weight: float
    error: str
    upstream_updated: bool = False

    class Config:
        from_attributes = True


class JobUsageResponse(BaseModel):
    success: bool
    succeeded: list[JobUsageItemResult]
    failed: list[JobUsageItemFailure]
    emptied: list[str]
    total_weight: float
    flow_compensation_value: float | None = None
