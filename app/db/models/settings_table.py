# app/db/models/settings_table.py
from typing import Optional
from sqlalchemy import Integer, String, Text, Boolean
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel

DEFAULT_MAINTENANCE_MESSAGE = "System is under maintenance. Please try again later."


class SystemSettings(DbBaseModel):
    """Single-row table of portal-wide switches."""

    __tablename__ = "system_settings"

    settings_id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)

    maintenance_mode: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    maintenance_message: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_MAINTENANCE_MESSAGE
    )

    estimated_downtime: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


__all__ = ["SystemSettings", "DEFAULT_MAINTENANCE_MESSAGE"]
