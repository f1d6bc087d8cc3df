# app/services/v1/appointment_access.py
from sqlalchemy import case, func, select, Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.db.models import Appointment
from common.api_error import NotFoundError
from .auth_guard import Principal

NOT_ACCESSIBLE = "Appointment not found or not accessible"


def time_slot_order() -> tuple:
    """
    ORDER BY terms that sort "HH:MM AM|PM" labels by clock time.

    Plain text order would put "01:00 PM" before "09:00 AM"; "12" sorts as
    the first hour of its half of the day.
    """
    slot = Appointment.time_slot
    hour = func.substr(slot, 1, 2)
    return (
        case((slot.like("%PM"), 1), else_=0),
        case((hour == "12", "00"), else_=hour),
        func.substr(slot, 4, 2),
    )


def appointment_detail_query(appointment_id: str) -> Select:
    """Appointment with every child collection eagerly loaded (no lazy IO under asyncio)."""
    return (
        select(Appointment)
        .options(
            selectinload(Appointment.service),
            selectinload(Appointment.selected_documents),
            selectinload(Appointment.document_validation),
            selectinload(Appointment.comments),
            selectinload(Appointment.status_history),
        )
        .where(Appointment.appointment_id == appointment_id)
        .execution_options(populate_existing=True)
    )


def is_visible_to(appointment: Appointment, principal: Principal) -> bool:
    if principal.is_admin:
        return True
    if principal.is_staff:
        return appointment.center_id == principal.center_id
    return appointment.user_id == principal.user_id


async def get_scoped_appointment(
    db: AsyncSession,
    appointment_id: str,
    principal: Principal,
    detail: bool = False,
) -> Appointment:
    """
    Load an appointment the principal may see.

    Raises:
        NotFoundError: Unknown id, or an appointment outside the caller's scope
    """
    if detail:
        query = appointment_detail_query(appointment_id)
    else:
        query = select(Appointment).where(Appointment.appointment_id == appointment_id)

    appointment = (
        await db.execute(
            query.execution_options(logging_token="get_scoped_appointment")
        )
    ).scalar_one_or_none()

    if appointment is None or not is_visible_to(appointment, principal):
        raise NotFoundError(NOT_ACCESSIBLE)
    return appointment


__all__ = [
    "appointment_detail_query",
    "get_scoped_appointment",
    "is_visible_to",
    "time_slot_order",
    "NOT_ACCESSIBLE",
]
