# app/db/schemas/dashboard_schemas.py
from datetime import date, datetime
from typing import Optional
from pydantic import Field
from ..models import AppointmentStatus
from .base_schema import ApiModel
from .notification_schemas import NotificationResponse


class StatusCounts(ApiModel):
    pending: int = 0
    confirmed: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    total: int = 0


class UpcomingAppointment(ApiModel):
    appointment_id: str
    reference_code: str
    time_slot: str
    status: AppointmentStatus
    service_name: str = "Unknown"


class CenterStatus(ApiModel):
    center_id: str
    center_name: str = "Unknown"
    is_working: Optional[bool] = None


class DashboardSnapshot(ApiModel):
    center_id: str
    start_date: date
    end_date: date
    counts: StatusCounts
    today_revenue: float = 0.0
    by_service: dict[str, int] = Field(default_factory=dict)
    upcoming: list[UpcomingAppointment] = Field(default_factory=list)
    recent_notifications: list[NotificationResponse] = Field(default_factory=list)
    center_status: Optional[CenterStatus] = None
    last_updated: datetime


__all__ = ["StatusCounts", "UpcomingAppointment", "CenterStatus", "DashboardSnapshot"]
