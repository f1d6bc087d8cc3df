# app/api/v1/appointment_router.py
from datetime import date
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_dispatcher, get_principal, require_permission
from app.db import get_db
from app.db.models import AppointmentStatus, StaffPermission
from app.db.schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentSummary,
    CommentCreate,
    CommentResponse,
    DocumentValidationResponse,
    DocumentValidationUpdate,
    MissingDocumentsNotice,
    NotificationResponse,
    StatusUpdateRequest,
)
from app.services.v1 import (
    AppointmentService,
    AppointmentStateMachine,
    DocumentValidationService,
    NotificationDispatcher,
    NotificationPayload,
    Principal,
)

appointment_router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
)


def _schedule_delivery(
    background_tasks: BackgroundTasks,
    dispatcher: NotificationDispatcher,
    notifications,
) -> None:
    payloads = [NotificationPayload.from_notification(n) for n in notifications]
    if payloads:
        background_tasks.add_task(dispatcher.deliver_external, payloads)


@appointment_router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    description="""
    Creates a pending appointment for the calling citizen and notifies the
    active staff of the chosen center.
    """,
    responses={
        400: {"description": "Past date or document not accepted by the service"},
        403: {"description": "Caller is not a citizen"},
        404: {"description": "Service or center not found"},
    },
)
async def create_appointment(
    payload: AppointmentCreate,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    result = await AppointmentService(db, dispatcher).create_appointment(principal, payload)
    _schedule_delivery(background_tasks, dispatcher, result.notifications)
    return result.appointment


@appointment_router.get(
    "",
    response_model=list[AppointmentSummary],
    summary="List center appointments",
    description="""
    Appointments of the caller's center, newest date first. Admins may pass
    `centerId` to pick a center.
    """,
)
async def list_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    on_date: Optional[date] = Query(None, alias="date"),
    center_id: Optional[str] = Query(None, alias="centerId"),
    principal: Principal = Depends(require_permission(StaffPermission.MANAGE_APPOINTMENTS)),
    db: AsyncSession = Depends(get_db),
):
    return await AppointmentService(db).list_appointments(
        principal, status=status_filter, on_date=on_date, center_id=center_id
    )


@appointment_router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get appointment details",
    responses={404: {"description": "Appointment not found or not accessible"}},
)
async def get_appointment(
    appointment_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await AppointmentService(db).get_appointment(principal, appointment_id)


@appointment_router.put(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Change appointment status",
    description="""
    Moves the appointment along its lifecycle and notifies the citizen.

    - pending -> confirmed | cancelled
    - confirmed -> in_progress | cancelled
    - in_progress -> completed | cancelled

    Cancelling requires a non-blank `reason`.
    """,
    responses={
        400: {"description": "Cancellation without a reason"},
        403: {"description": "Missing update_status permission"},
        404: {"description": "Appointment not found or not accessible"},
        409: {"description": "Transition not allowed from the current status"},
    },
)
async def update_status(
    appointment_id: str,
    payload: StatusUpdateRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    result = await AppointmentStateMachine(db, dispatcher).transition(
        appointment_id,
        payload.status,
        principal,
        reason=payload.reason,
        notes=payload.notes,
    )
    _schedule_delivery(background_tasks, dispatcher, result.notifications)
    return result.appointment


@appointment_router.post(
    "/{appointment_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on an appointment",
)
async def add_comment(
    appointment_id: str,
    payload: CommentCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await AppointmentService(db).add_comment(
        principal, appointment_id, payload.comment
    )


@appointment_router.put(
    "/{appointment_id}/validation",
    response_model=DocumentValidationResponse,
    summary="Record document validation",
    description="""
    Overwrites the staff verdict on the documents the citizen selected.
    Every `missingDocuments` entry must name a selected document.
    """,
)
async def record_validation(
    appointment_id: str,
    payload: DocumentValidationUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentValidationService(db).record_validation(
        appointment_id,
        is_validated=payload.is_validated,
        missing_documents=payload.missing_documents,
        staff_notes=payload.staff_notes,
        principal=principal,
    )


@appointment_router.post(
    "/{appointment_id}/notify-missing-documents",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Notify citizen about missing documents",
)
async def notify_missing_documents(
    appointment_id: str,
    payload: MissingDocumentsNotice,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    result = await DocumentValidationService(db, dispatcher).notify_missing_documents(
        appointment_id,
        payload.missing_documents,
        principal,
        alternatives=payload.alternatives,
        message=payload.message,
    )
    _schedule_delivery(background_tasks, dispatcher, [result.notification])
    return result.notification


__all__ = ["appointment_router"]
