# app/db/models/user_table.py
from __future__ import annotations
from typing import TYPE_CHECKING, Optional
from enum import Enum
from sqlalchemy import String, Boolean, Enum as sqlalchemy_Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_values

if TYPE_CHECKING:
    from .staff_table import Staff


class UserRole(str, Enum):
    USER = "user"  # Citizen booking services
    STAFF = "staff"  # Works at one center
    ADMIN = "admin"  # Holds every permission, no center restriction


class User(DbBaseModel):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    role: Mapped[UserRole] = mapped_column(
        sqlalchemy_Enum(UserRole, name="user_role", values_callable=enum_values),
        nullable=False,
        default=UserRole.USER,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    staff_profile: Mapped[Optional["Staff"]] = relationship(
        "Staff", back_populates="user", uselist=False
    )


__all__ = ["User", "UserRole"]
