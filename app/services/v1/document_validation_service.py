# app/services/v1/document_validation_service.py
from dataclasses import dataclass
from typing import Optional, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.db.models import (
    Appointment,
    DocumentValidation,
    Notification,
    StaffPermission,
    utc_now,
)
from common.api_error import InputValidationError, NotFoundError
from common.logger import get_app_logger
from .auth_guard import AuthorizationGuard, Principal
from .appointment_access import NOT_ACCESSIBLE, is_visible_to
from .notification_service import MissingDocumentsEvent, NotificationDispatcher

logger = get_app_logger(__name__)

DOCUMENT_PERMISSIONS = (StaffPermission.UPDATE_STATUS, StaffPermission.UPLOAD_DOCUMENTS)


@dataclass
class MissingDocumentsResult:
    appointment_id: str
    notification: Notification


def resolve_missing_documents(
    selected_names: Sequence[str], missing_documents: Sequence[str]
) -> list[str]:
    """
    Check `missing_documents` against the selected display names.

    Duplicates collapse and the result follows the selected-document order.

    Raises:
        InputValidationError: A name that was never selected
    """
    unknown = sorted({name for name in missing_documents if name not in selected_names})
    if unknown:
        raise InputValidationError(
            "Missing documents must be among the selected documents: "
            + ", ".join(unknown)
        )
    wanted = set(missing_documents)
    ordered: list[str] = []
    for name in selected_names:
        if name in wanted and name not in ordered:
            ordered.append(name)
    return ordered


class DocumentValidationService:
    def __init__(self, db: AsyncSession, dispatcher: Optional[NotificationDispatcher] = None):
        self.db = db
        self.dispatcher = dispatcher

    async def _load(self, appointment_id: str, principal: Principal) -> Appointment:
        query = (
            select(Appointment)
            .options(
                selectinload(Appointment.selected_documents),
                selectinload(Appointment.document_validation),
                selectinload(Appointment.service),
            )
            .where(Appointment.appointment_id == appointment_id)
            .execution_options(logging_token="DocumentValidationService._load")
        )
        appointment = (await self.db.execute(query)).scalar_one_or_none()
        if appointment is None or not is_visible_to(appointment, principal):
            raise NotFoundError(NOT_ACCESSIBLE)
        return appointment

    async def record_validation(
        self,
        appointment_id: str,
        is_validated: bool,
        missing_documents: Sequence[str],
        staff_notes: Optional[str],
        principal: Principal,
    ) -> DocumentValidation:
        """
        Overwrite the appointment's single validation record.

        Repeating the same call leaves the record unchanged except validated_at.
        """
        AuthorizationGuard.require_any(principal, *DOCUMENT_PERMISSIONS)
        appointment = await self._load(appointment_id, principal)

        selected = [doc.display_name for doc in appointment.selected_documents]
        missing = resolve_missing_documents(selected, missing_documents)

        validation = appointment.document_validation
        if validation is None:
            validation = DocumentValidation(appointment_id=appointment_id)
            self.db.add(validation)

        validation.is_validated = is_validated
        validation.missing_documents = missing
        validation.staff_notes = staff_notes
        validation.validated_by = principal.user_id
        validation.validated_at = utc_now()

        await self.db.commit()

        logger.info(
            "Documents validated",
            appointment_id=appointment_id,
            is_validated=is_validated,
            missing_count=len(missing),
            actor_id=principal.user_id,
        )
        return validation

    async def notify_missing_documents(
        self,
        appointment_id: str,
        missing_documents: Sequence[str],
        principal: Principal,
        alternatives: Optional[str] = None,
        message: Optional[str] = None,
    ) -> MissingDocumentsResult:
        """Send the citizen one notification listing what to bring. The appointment is not modified."""
        AuthorizationGuard.require_any(principal, *DOCUMENT_PERMISSIONS)
        unique_missing: list[str] = []
        for name in (raw.strip() for raw in missing_documents):
            if name and name not in unique_missing:
                unique_missing.append(name)
        if not unique_missing:
            raise InputValidationError("missingDocuments must name at least one document")
        if self.dispatcher is None:
            raise RuntimeError("NotificationDispatcher is required to notify citizens")

        appointment = await self._load(appointment_id, principal)
        service_name = appointment.service.name if appointment.service else "Unknown"

        notifications = await self.dispatcher.emit(
            self.db,
            MissingDocumentsEvent(
                appointment_id=appointment_id,
                citizen_id=appointment.user_id,
                service_name=service_name,
                missing_documents=tuple(unique_missing),
                actor_id=principal.user_id,
                alternatives=alternatives,
                message=message,
            ),
        )
        await self.db.commit()

        logger.info(
            "Missing documents notification sent",
            appointment_id=appointment_id,
            recipient_id=appointment.user_id,
            actor_id=principal.user_id,
        )
        return MissingDocumentsResult(
            appointment_id=appointment_id, notification=notifications[0]
        )


__all__ = [
    "DocumentValidationService",
    "MissingDocumentsResult",
    "resolve_missing_documents",
    "DOCUMENT_PERMISSIONS",
]
