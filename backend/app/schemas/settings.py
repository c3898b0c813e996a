from pydantic import BaseModel, Field, field_validator, model_validator


class AppConfig(BaseModel):
    """Current runtime configuration, as returned to the dashboard."""

    spoolman_url: str = Field(serialization_alias="spoolmanUrl", description="Spoolman base URL, without /api/v1")
    flow_compensation_value: float = Field(
        serialization_alias="flowCompensationValue",
        description="Grams added per filament when flow compensation is requested",
    )


class AppConfigUpdate(BaseModel):
    """Partial configuration update. At least one field is required."""

    spoolman_url: str | None = Field(default=None, alias="spoolmanUrl")
    flow_compensation_value: float | None = Field(default=None, alias="flowCompensationValue", ge=0, allow_inf_nan=False)

    class Config:
        populate_by_name = True

    @field_validator("spoolman_url")
    @classmethod
    def url_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("spoolmanUrl is required and must be a non-empty string")
        return value

    @model_validator(mode="after")
    def at_least_one_field(self):
        if self.spoolman_url is None and self.flow_compensation_value is None:
            raise ValueError("spoolmanUrl or flowCompensationValue is required")
        return self


class AppConfigUpdateResult(AppConfig):
    success: bool = True
