# app/services/v1/appointment_service.py
from dataclasses import dataclass, field
from datetime import date
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import (
    Appointment,
    AppointmentComment,
    AppointmentStatus,
    Center,
    CommentAuthorType,
    Notification,
    SelectedDocument,
    Service,
    StaffPermission,
    UserRole,
)
from app.db.schemas import AppointmentCreate
from common.api_error import InputValidationError, NotFoundError
from common.logger import get_app_logger
from .auth_guard import AuthorizationGuard, Principal
from .appointment_access import (
    appointment_detail_query,
    get_scoped_appointment,
    time_slot_order,
)
from .notification_service import BookingEvent, NotificationDispatcher

logger = get_app_logger(__name__)

LIST_LIMIT = 100


@dataclass
class BookingResult:
    appointment: Appointment
    notifications: list[Notification] = field(default_factory=list)


class AppointmentService:
    def __init__(self, db: AsyncSession, dispatcher: Optional[NotificationDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher

    async def create_appointment(
        self,
        principal: Principal,
        data: AppointmentCreate,
        today: Optional[date] = None,
    ) -> BookingResult:
        """
        Book a pending appointment for the calling citizen and tell the center's staff.

        Raises:
            ForbiddenError: Caller is not a citizen
            NotFoundError: Unknown or inactive service/center
            InputValidationError: Past date, or a document the service does not accept
        """
        AuthorizationGuard.require_role(principal, UserRole.USER)

        service = await self.db.get(Service, data.service_id)
        if service is None or not service.is_active:
            raise NotFoundError("Service not found")

        center = await self.db.get(Center, data.center_id)
        if center is None or not center.is_active:
            raise NotFoundError("Center not found")

        if data.appointment_date < (today or date.today()):
            raise InputValidationError("Appointment date cannot be in the past")

        accepted = service.accepted_document_names()
        if accepted:
            unknown = sorted(
                {
                    name
                    for doc in data.selected_documents
                    for name in (doc.document_name, doc.alternative_name)
                    if name and name not in accepted
                }
            )
            if unknown:
                raise InputValidationError(
                    f"Documents not accepted for {service.name}: {', '.join(unknown)}"
                )

        appointment = Appointment(
            user_id=principal.user_id,
            service_id=service.service_id,
            center_id=center.center_id,
            appointment_date=data.appointment_date,
            time_slot=data.time_slot,
            status=AppointmentStatus.PENDING,
            notes=data.notes,
            selected_documents=[
                SelectedDocument(
                    position=position,
                    document_name=doc.document_name,
                    is_alternative=doc.is_alternative,
                    alternative_name=doc.alternative_name if doc.is_alternative else None,
                )
                for position, doc in enumerate(data.selected_documents)
            ],
        )
        self.db.add(appointment)
        await self.db.flush()

        notifications: list[Notification] = []
        if self.dispatcher is not None:
            notifications = await self.dispatcher.emit(
                self.db,
                BookingEvent(
                    appointment_id=appointment.appointment_id,
                    citizen_id=principal.user_id,
                    center_id=center.center_id,
                    service_name=service.name,
                    appointment_date=appointment.appointment_date,
                    time_slot=appointment.time_slot,
                    reference_code=appointment.reference_code,
                ),
            )
        await self.db.commit()

        logger.info(
            "Appointment booked",
            appointment_id=appointment.appointment_id,
            center_id=center.center_id,
            service_id=service.service_id,
        )
        created = (
            await self.db.execute(appointment_detail_query(appointment.appointment_id))
        ).scalar_one()
        return BookingResult(appointment=created, notifications=notifications)

    async def get_appointment(self, principal: Principal, appointment_id: str) -> Appointment:
        if not principal.is_citizen:
            AuthorizationGuard.require(principal, StaffPermission.MANAGE_APPOINTMENTS)
        return await get_scoped_appointment(
            self.db, appointment_id, principal, detail=True
        )

    async def list_appointments(
        self,
        principal: Principal,
        status: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None,
        center_id: Optional[str] = None,
        limit: int = LIST_LIMIT,
    ) -> list[Appointment]:
        """Appointments of the staff member's center (admins may pick any center)."""
        AuthorizationGuard.require(principal, StaffPermission.MANAGE_APPOINTMENTS)

        query = select(Appointment)
        scope_center = center_id if principal.is_admin else principal.center_id
        if scope_center:
            query = query.where(Appointment.center_id == scope_center)
        if status is not None:
            query = query.where(Appointment.status == AppointmentStatus(status))
        if on_date is not None:
            query = query.where(Appointment.appointment_date == on_date)

        query = (
            query.order_by(
                Appointment.appointment_date.desc(),
                *time_slot_order(),
                Appointment.created_at,
            )
            .limit(limit)
            .execution_options(logging_token="AppointmentService.list_appointments")
        )
        return list((await self.db.execute(query)).scalars().all())

    async def add_comment(
        self, principal: Principal, appointment_id: str, content: str
    ) -> AppointmentComment:
        if principal.is_citizen:
            author_type = CommentAuthorType.USER
        else:
            AuthorizationGuard.require(principal, StaffPermission.ADD_COMMENTS)
            author_type = CommentAuthorType.STAFF

        if not content.strip():
            raise InputValidationError("Comment must not be blank")

        appointment = await get_scoped_appointment(self.db, appointment_id, principal)

        comment = AppointmentComment(
            appointment_id=appointment.appointment_id,
            author_id=principal.user_id,
            author_type=author_type,
            content=content.strip(),
        )
        self.db.add(comment)
        await self.db.commit()

        logger.info(
            "Comment added",
            appointment_id=appointment_id,
            author_type=author_type.value,
        )
        return comment


__all__ = ["AppointmentService", "BookingResult"]
