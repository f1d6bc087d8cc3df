# app/db/models/center_table.py
from __future__ import annotations
from typing import TYPE_CHECKING, Optional
from sqlalchemy import String, Text, Boolean
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .db_base_model import DbBaseModel

if TYPE_CHECKING:
    from .staff_table import Staff
    from .appointment_table import Appointment


class Center(DbBaseModel):
    __tablename__ = "centers"

    center_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    contact_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    staff: Mapped[list["Staff"]] = relationship("Staff", back_populates="center")

    appointments: Mapped[list["Appointment"]] = relationship(
        "Appointment", back_populates="center"
    )


__all__ = ["Center"]
