# app/services/v1/status_machine.py
"""
Appointment lifecycle.

    pending -> confirmed -> in_progress -> completed
       \\__________\\______________\\______-> cancelled

completed and cancelled are terminal. The legality check runs against the
persisted status inside one conditional UPDATE, so of two concurrent
conflicting transitions at most one succeeds.
"""

from dataclasses import dataclass, field
from typing import Optional
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import (
    Appointment,
    AppointmentStatus,
    StaffPermission,
    StatusHistoryEntry,
    Notification,
    utc_now,
)
from common.api_error import IllegalTransitionError, InputValidationError
from common.logger import get_app_logger
from .auth_guard import AuthorizationGuard, Principal
from .appointment_access import appointment_detail_query, get_scoped_appointment
from .notification_service import NotificationDispatcher, TransitionEvent

logger = get_app_logger(__name__)

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset(
        {AppointmentStatus.IN_PROGRESS, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.IN_PROGRESS: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return AppointmentStatus(target) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def is_terminal(status: AppointmentStatus) -> bool:
    return not ALLOWED_TRANSITIONS[AppointmentStatus(status)]


@dataclass
class TransitionResult:
    appointment: Appointment
    notifications: list[Notification] = field(default_factory=list)


class AppointmentStateMachine:
    def __init__(self, db: AsyncSession, dispatcher: NotificationDispatcher):
        self.db = db
        self.dispatcher = dispatcher

    async def transition(
        self,
        appointment_id: str,
        target_status: AppointmentStatus,
        principal: Principal,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move an appointment to `target_status` and notify its citizen.

        Raises:
            ForbiddenError: Principal lacks update_status
            NotFoundError: Unknown appointment or outside the staff member's center
            InputValidationError: Cancelling without a reason
            IllegalTransitionError: Not an edge from the persisted status,
                or another writer changed the status first
        """
        AuthorizationGuard.require(principal, StaffPermission.UPDATE_STATUS)
        target = AppointmentStatus(target_status)

        appointment = await get_scoped_appointment(self.db, appointment_id, principal)
        current = AppointmentStatus(appointment.status)

        if target == AppointmentStatus.CANCELLED and not (reason and reason.strip()):
            raise InputValidationError("A reason is required to cancel an appointment")

        if not can_transition(current, target):
            raise IllegalTransitionError(current.value, target.value)

        now = utc_now()
        values: dict = {"status": target, "updated_at": now}
        if target == AppointmentStatus.COMPLETED:
            values["completed_at"] = now

        stmt = (
            update(Appointment)
            .where(
                Appointment.appointment_id == appointment_id,
                Appointment.status == current,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)

        log = logger.bind(appointment_id=appointment_id, actor_id=principal.user_id)
        if result.rowcount != 1:
            log.warning(
                "Concurrent status change lost",
                expected=current.value,
                target=target.value,
            )
            raise IllegalTransitionError(current.value, target.value)

        self.db.add(
            StatusHistoryEntry(
                appointment_id=appointment_id,
                from_status=current,
                to_status=target,
                changed_by=principal.user_id,
                reason=reason.strip() if reason else None,
                notes=notes,
            )
        )

        notifications = await self.dispatcher.emit(
            self.db,
            TransitionEvent(
                appointment_id=appointment_id,
                citizen_id=appointment.user_id,
                from_status=current,
                to_status=target,
                actor_id=principal.user_id,
                reason=reason,
                timestamp=now,
            ),
        )
        await self.db.commit()

        log.info(
            "Appointment status changed",
            from_status=current.value,
            to_status=target.value,
        )

        refreshed = (
            await self.db.execute(appointment_detail_query(appointment_id))
        ).scalar_one()
        return TransitionResult(appointment=refreshed, notifications=notifications)


__all__ = [
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "is_terminal",
    "AppointmentStateMachine",
    "TransitionResult",
]
