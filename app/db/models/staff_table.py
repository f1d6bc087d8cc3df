# app/db/models/staff_table.py
from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from sqlalchemy import String, Boolean, ForeignKey, JSON, Enum as sqlalchemy_Enum
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_values

if TYPE_CHECKING:
    from .user_table import User
    from .center_table import Center


class StaffPermission(str, Enum):
    MANAGE_APPOINTMENTS = "manage_appointments"
    UPDATE_STATUS = "update_status"
    ADD_COMMENTS = "add_comments"
    UPLOAD_DOCUMENTS = "upload_documents"
    MANAGE_SERVICES = "manage_services"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_SCHEDULE = "manage_schedule"
    VIEW_REPORTS = "view_reports"


class StaffRole(str, Enum):
    STAFF = "staff"
    SUPERVISOR = "supervisor"


DEFAULT_PERMISSIONS: tuple[StaffPermission, ...] = (
    StaffPermission.MANAGE_APPOINTMENTS,
    StaffPermission.UPDATE_STATUS,
    StaffPermission.ADD_COMMENTS,
    StaffPermission.UPLOAD_DOCUMENTS,
    StaffPermission.MANAGE_SERVICES,
    StaffPermission.VIEW_ANALYTICS,
)

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def default_permissions() -> list[dict[str, Any]]:
    return [{"action": p.value, "granted": True} for p in DEFAULT_PERMISSIONS]


def default_working_hours() -> dict[str, dict[str, Any]]:
    hours = {
        day: {"start": "09:00", "end": "17:00", "is_working": True}
        for day in WEEKDAYS[:6]
    }
    hours["sunday"] = {"start": "10:00", "end": "16:00", "is_working": False}
    return hours


def _hhmm(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 100 + int(minutes)


class Staff(DbBaseModel):
    __tablename__ = "staff"

    staff_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=False,
        unique=True,
    )

    center_id: Mapped[str] = mapped_column(
        ForeignKey("centers.center_id"),
        nullable=False,
        index=True,
    )

    staff_role: Mapped[StaffRole] = mapped_column(
        sqlalchemy_Enum(StaffRole, name="staff_role", values_callable=enum_values),
        nullable=False,
        default=StaffRole.STAFF,
    )

    # [{"action": "update_status", "granted": true}, ...]
    permissions: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=default_permissions,
    )

    working_hours: Mapped[dict[str, dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=default_working_hours,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    user: Mapped["User"] = relationship("User", back_populates="staff_profile")
    center: Mapped["Center"] = relationship("Center", back_populates="staff")

    def granted_permissions(self) -> frozenset[str]:
        if not self.is_active:
            return frozenset()
        return frozenset(
            p["action"] for p in (self.permissions or []) if p.get("granted", True)
        )

    def has_permission(self, action: str) -> bool:
        return action in self.granted_permissions()

    def is_working_at(self, moment: datetime) -> bool:
        """Whether `moment` (local time) falls inside this staff member's shift."""
        schedule = (self.working_hours or {}).get(WEEKDAYS[moment.weekday()])
        if not schedule or not schedule.get("is_working"):
            return False
        current = moment.hour * 100 + moment.minute
        return _hhmm(schedule["start"]) <= current <= _hhmm(schedule["end"])


__all__ = [
    "Staff",
    "StaffPermission",
    "StaffRole",
    "DEFAULT_PERMISSIONS",
    "default_permissions",
    "default_working_hours",
]
