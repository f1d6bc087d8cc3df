# app/services/v1/notification_service.py
"""
Notification dispatch and the per-user inbox.

emit() writes Notification rows inside the caller's session so they commit
together with the change that triggered them. deliver_external() pushes the
same payloads to outside channels after the response; its failures are
logged and never reach the caller.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence, Union
import httpx
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import (
    AppointmentStatus,
    Notification,
    NotificationType,
    Staff,
    utc_now,
)
from common import NotificationConfig
from common.api_error import NotFoundError
from common.logger import get_app_logger

logger = get_app_logger(__name__, track_timing=True)

INBOX_LIMIT = 50

STATUS_NOTIFICATIONS: dict[AppointmentStatus, tuple[str, str]] = {
    AppointmentStatus.CONFIRMED: (
        "Appointment confirmed",
        "Your appointment has been confirmed.",
    ),
    AppointmentStatus.IN_PROGRESS: (
        "Appointment in progress",
        "Your appointment is now in progress.",
    ),
    AppointmentStatus.COMPLETED: (
        "Appointment completed",
        "Your appointment has been completed.",
    ),
    AppointmentStatus.CANCELLED: (
        "Appointment cancelled",
        "Appointment cancelled: {reason}",
    ),
}

MISSING_DOCUMENTS_TITLE = "Missing Documents for Appointment"
DEFAULT_MISSING_DOCUMENTS_MESSAGE = (
    "Some required documents are missing for your {service} appointment."
)


@dataclass(frozen=True)
class TransitionEvent:
    appointment_id: str
    citizen_id: str
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    actor_id: str
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class MissingDocumentsEvent:
    appointment_id: str
    citizen_id: str
    service_name: str
    missing_documents: tuple[str, ...]
    actor_id: str
    alternatives: Optional[str] = None
    message: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class BookingEvent:
    appointment_id: str
    citizen_id: str
    center_id: str
    service_name: str
    appointment_date: date
    time_slot: str
    reference_code: str
    timestamp: datetime = field(default_factory=utc_now)


NotificationEvent = Union[TransitionEvent, MissingDocumentsEvent, BookingEvent]


@dataclass(frozen=True)
class NotificationPayload:
    """Detached copy of a Notification row, safe to use after the session closes."""

    notification_id: str
    recipient_id: str
    title: str
    message: str
    type: str
    appointment_id: Optional[str] = None

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationPayload":
        return cls(
            notification_id=notification.notification_id,
            recipient_id=notification.recipient_id,
            title=notification.title,
            message=notification.message,
            type=NotificationType(notification.type).value,
            appointment_id=notification.appointment_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "notificationId": self.notification_id,
            "recipientId": self.recipient_id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "appointmentId": self.appointment_id,
        }


class ExternalChannel(Protocol):
    name: str

    async def send(self, payload: NotificationPayload) -> None: ...


class LogChannel:
    """Records outbound notifications in the application log only."""

    name = "log"

    async def send(self, payload: NotificationPayload) -> None:
        logger.info(
            "Notification queued for delivery",
            notification_id=payload.notification_id,
            recipient_id=payload.recipient_id,
        )


class WebhookChannel:
    """POSTs each notification as JSON to an SMS/e-mail gateway."""

    name = "webhook"

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def send(self, payload: NotificationPayload) -> None:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.post(self.url, json=payload.to_dict())
            response.raise_for_status()


def format_missing_documents_message(event: MissingDocumentsEvent) -> str:
    base = event.message or DEFAULT_MISSING_DOCUMENTS_MESSAGE.format(
        service=event.service_name
    )
    parts = [base, "Missing documents: " + ", ".join(event.missing_documents)]
    if event.alternatives:
        parts.append(f"Suggested alternatives: {event.alternatives}")
    return "\n".join(parts)


class NotificationDispatcher:
    """
    Turns domain events into Notification rows and fans them out.

    Usage:
        dispatcher = NotificationDispatcher.from_config(config.notifications)
        created = await dispatcher.emit(session, event)
        background_tasks.add_task(dispatcher.deliver_external, payloads)
    """

    def __init__(self, channels: Optional[Sequence[ExternalChannel]] = None):
        self.channels: list[ExternalChannel] = list(channels or [])
        self.delivery_failures = 0

    @classmethod
    def from_config(cls, config: NotificationConfig) -> "NotificationDispatcher":
        channels: list[ExternalChannel] = [LogChannel()]
        if config.webhook_url:
            channels.append(WebhookChannel(config.webhook_url, config.webhook_timeout))
        return cls(channels)

    async def emit(
        self, session: AsyncSession, event: NotificationEvent
    ) -> list[Notification]:
        """
        Create the Notification rows for `event` in `session` and flush them.
        The caller owns the commit.
        """
        if isinstance(event, TransitionEvent):
            notifications = self._for_transition(event)
        elif isinstance(event, MissingDocumentsEvent):
            notifications = [self._for_missing_documents(event)]
        elif isinstance(event, BookingEvent):
            notifications = await self._for_booking(session, event)
        else:
            raise TypeError(f"Unsupported notification event: {type(event).__name__}")

        session.add_all(notifications)
        await session.flush()

        logger.info(
            "Notifications created",
            event_type=type(event).__name__,
            appointment_id=event.appointment_id,
            count=len(notifications),
        )
        return notifications

    def _for_transition(self, event: TransitionEvent) -> list[Notification]:
        template = STATUS_NOTIFICATIONS.get(AppointmentStatus(event.to_status))
        if template is None:
            return []
        title, message = template
        return [
            Notification(
                recipient_id=event.citizen_id,
                type=NotificationType.APPOINTMENT,
                title=title,
                message=message.format(reason=event.reason or ""),
                appointment_id=event.appointment_id,
            )
        ]

    def _for_missing_documents(self, event: MissingDocumentsEvent) -> Notification:
        return Notification(
            recipient_id=event.citizen_id,
            type=NotificationType.APPOINTMENT,
            title=MISSING_DOCUMENTS_TITLE,
            message=format_missing_documents_message(event),
            appointment_id=event.appointment_id,
        )

    async def _for_booking(
        self, session: AsyncSession, event: BookingEvent
    ) -> list[Notification]:
        when = f"{event.appointment_date.isoformat()} at {event.time_slot}"
        notifications = [
            Notification(
                recipient_id=event.citizen_id,
                type=NotificationType.APPOINTMENT,
                title="Appointment booked",
                message=(
                    f"Your {event.service_name} appointment on {when} has been booked. "
                    f"Reference: {event.reference_code}"
                ),
                appointment_id=event.appointment_id,
            )
        ]

        query = (
            select(Staff.user_id)
            .where(Staff.center_id == event.center_id, Staff.is_active.is_(True))
            .execution_options(logging_token="NotificationDispatcher.booking_staff")
        )
        staff_user_ids = (await session.execute(query)).scalars().all()
        for user_id in staff_user_ids:
            notifications.append(
                Notification(
                    recipient_id=user_id,
                    type=NotificationType.APPOINTMENT,
                    title="New Appointment Booked",
                    message=f"New appointment for {event.service_name} on {when}",
                    appointment_id=event.appointment_id,
                )
            )
        return notifications

    async def deliver_external(self, payloads: Sequence[NotificationPayload]) -> int:
        """
        Best-effort push of committed notifications to every channel.

        Returns the number of successful channel sends. Never raises.
        """
        delivered = 0
        for payload in payloads:
            for channel in self.channels:
                try:
                    await channel.send(payload)
                    delivered += 1
                except Exception as e:
                    self.delivery_failures += 1
                    logger.warning(
                        "External notification delivery failed",
                        channel=channel.name,
                        notification_id=payload.notification_id,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
        return delivered


class NotificationService:
    """Inbox reads and read-marking for one recipient."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_recipient(
        self, recipient_id: str, limit: int = INBOX_LIMIT
    ) -> tuple[list[Notification], int]:
        query = (
            select(Notification)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc(), Notification.notification_id)
            .limit(limit)
            .execution_options(logging_token="NotificationService.list_for_recipient")
        )
        items = list((await self.db.execute(query)).scalars().all())
        return items, await self.unread_count(recipient_id)

    async def unread_count(self, recipient_id: str) -> int:
        query = select(func.count(Notification.notification_id)).where(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
        return int((await self.db.execute(query)).scalar_one())

    async def mark_read(self, recipient_id: str, notification_id: str) -> Notification:
        notification = await self.db.get(Notification, notification_id)
        # Someone else's notification is reported exactly like a missing one
        if notification is None or notification.recipient_id != recipient_id:
            raise NotFoundError("Notification not found")
        if not notification.is_read:
            notification.is_read = True
            await self.db.commit()
        return notification

    async def mark_all_read(self, recipient_id: str) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return result.rowcount or 0


__all__ = [
    "TransitionEvent",
    "MissingDocumentsEvent",
    "BookingEvent",
    "NotificationPayload",
    "ExternalChannel",
    "LogChannel",
    "WebhookChannel",
    "NotificationDispatcher",
    "NotificationService",
    "STATUS_NOTIFICATIONS",
    "DEFAULT_MISSING_DOCUMENTS_MESSAGE",
    "format_missing_documents_message",
]
