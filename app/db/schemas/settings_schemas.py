# app/db/schemas/settings_schemas.py
from typing import Optional
from pydantic import Field, field_validator
from .base_schema import ApiModel


class SystemSettingsResponse(ApiModel):
    maintenance_mode: bool
    maintenance_message: str
    estimated_downtime: Optional[str] = None


class SystemSettingsUpdate(ApiModel):
    """Partial update: omitted fields keep their value, estimatedDowntime may be cleared with null."""

    maintenance_mode: Optional[bool] = None
    maintenance_message: Optional[str] = Field(None, min_length=1, max_length=500)
    estimated_downtime: Optional[str] = Field(None, max_length=100)

    @field_validator("maintenance_mode", "maintenance_message")
    @classmethod
    def reject_explicit_null(cls, v):
        # Only runs for values the client sent; defaults are not validated
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


__all__ = ["SystemSettingsResponse", "SystemSettingsUpdate"]
