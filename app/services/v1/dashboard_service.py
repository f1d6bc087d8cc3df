# app/services/v1/dashboard_service.py
"""
Read-only staff dashboard.

Each section is computed independently; a missing service or center
degrades to defaults ("Unknown", fee 0) instead of failing the snapshot.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import (
    Appointment,
    AppointmentStatus,
    Center,
    Notification,
    Service,
    Staff,
    UserRole,
    utc_now,
)
from app.db.schemas import (
    CenterStatus,
    DashboardSnapshot,
    NotificationResponse,
    StatusCounts,
    UpcomingAppointment,
)
from common.api_error import InputValidationError
from common.logger import get_app_logger
from .auth_guard import AuthorizationGuard, Principal
from .appointment_access import time_slot_order

logger = get_app_logger(__name__)

UPCOMING_LIMIT = 5
RECENT_NOTIFICATIONS_LIMIT = 5
UNKNOWN_SERVICE = "Unknown"
DASHBOARD_ROLES = (UserRole.STAFF, UserRole.ADMIN)


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def resolve_center(self, principal: Principal, center_id: Optional[str]) -> str:
        if principal.is_admin:
            if not center_id:
                raise InputValidationError("centerId is required for admin dashboards")
            return center_id
        return principal.center_id  # type: ignore[return-value]

    async def get_snapshot(
        self,
        principal: Principal,
        start_date: date,
        end_date: date,
        today: Optional[date] = None,
        center_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DashboardSnapshot:
        AuthorizationGuard.require_role(principal, *DASHBOARD_ROLES)
        if start_date > end_date:
            raise InputValidationError("startDate must not be after endDate")

        center = self.resolve_center(principal, center_id)
        today = today or date.today()

        snapshot = DashboardSnapshot(
            center_id=center,
            start_date=start_date,
            end_date=end_date,
            counts=await self._status_counts(center, start_date, end_date),
            today_revenue=await self._today_revenue(center, today),
            by_service=await self._counts_by_service(center, start_date, end_date),
            upcoming=await self._upcoming(center, today),
            recent_notifications=await self._recent_notifications(principal.user_id),
            center_status=await self._center_status(principal, center, now),
            last_updated=utc_now(),
        )
        logger.debug(
            "Dashboard snapshot built",
            center_id=center,
            total=snapshot.counts.total,
        )
        return snapshot

    async def _status_counts(self, center_id: str, start: date, end: date) -> StatusCounts:
        query = (
            select(Appointment.status, func.count(Appointment.appointment_id))
            .where(
                Appointment.center_id == center_id,
                Appointment.appointment_date.between(start, end),
            )
            .group_by(Appointment.status)
            .execution_options(logging_token="DashboardService.status_counts")
        )
        rows = (await self.db.execute(query)).all()
        counts = {status.value: 0 for status in AppointmentStatus}
        for status, count in rows:
            counts[AppointmentStatus(status).value] = count
        return StatusCounts(**counts, total=sum(counts.values()))

    async def _today_revenue(self, center_id: str, today: date) -> float:
        # Outer join: an appointment whose service row is gone contributes 0
        query = (
            select(func.coalesce(func.sum(Service.fee), 0))
            .select_from(Appointment)
            .outerjoin(Service, Service.service_id == Appointment.service_id)
            .where(
                Appointment.center_id == center_id,
                Appointment.status == AppointmentStatus.COMPLETED,
                Appointment.appointment_date == today,
            )
            .execution_options(logging_token="DashboardService.today_revenue")
        )
        total = (await self.db.execute(query)).scalar_one()
        return float(Decimal(str(total or 0)))

    async def _counts_by_service(
        self, center_id: str, start: date, end: date
    ) -> dict[str, int]:
        query = (
            select(Service.name, func.count(Appointment.appointment_id))
            .select_from(Appointment)
            .outerjoin(Service, Service.service_id == Appointment.service_id)
            .where(
                Appointment.center_id == center_id,
                Appointment.appointment_date.between(start, end),
            )
            .group_by(Service.name)
        )
        result: dict[str, int] = {}
        for name, count in (await self.db.execute(query)).all():
            key = name or UNKNOWN_SERVICE
            result[key] = result.get(key, 0) + count
        return result

    async def _upcoming(self, center_id: str, today: date) -> list[UpcomingAppointment]:
        query = (
            select(Appointment, Service.name)
            .outerjoin(Service, Service.service_id == Appointment.service_id)
            .where(
                Appointment.center_id == center_id,
                Appointment.appointment_date == today,
                Appointment.status.in_(
                    [AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS]
                ),
            )
            .order_by(*time_slot_order())
            .limit(UPCOMING_LIMIT)
        )
        return [
            UpcomingAppointment(
                appointment_id=appointment.appointment_id,
                reference_code=appointment.reference_code,
                time_slot=appointment.time_slot,
                status=appointment.status,
                service_name=service_name or UNKNOWN_SERVICE,
            )
            for appointment, service_name in (await self.db.execute(query)).all()
        ]

    async def _recent_notifications(self, user_id: str) -> list[NotificationResponse]:
        query = (
            select(Notification)
            .where(Notification.recipient_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(RECENT_NOTIFICATIONS_LIMIT)
        )
        return [
            NotificationResponse.model_validate(n)
            for n in (await self.db.execute(query)).scalars().all()
        ]

    async def _center_status(
        self, principal: Principal, center_id: str, now: Optional[datetime]
    ) -> Optional[CenterStatus]:
        if principal.is_admin:
            return None

        center = await self.db.get(Center, center_id)
        is_working: Optional[bool] = None
        if principal.staff_id:
            staff = await self.db.get(Staff, principal.staff_id)
            if staff is not None:
                is_working = staff.is_working_at(now or datetime.now())
        return CenterStatus(
            center_id=center_id,
            center_name=center.name if center else "Unknown",
            is_working=is_working,
        )


__all__ = ["DashboardService"]
