# app/db/models/notification_table.py
from enum import Enum
from typing import Optional
from sqlalchemy import String, Text, Boolean, ForeignKey, Enum as sqlalchemy_Enum
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_values


class NotificationType(str, Enum):
    APPOINTMENT = "appointment"
    SYSTEM = "system"
    ANNOUNCEMENT = "announcement"


class Notification(DbBaseModel):
    """
    Inbox message for one recipient.

    Only `is_read` ever changes after insert; rows are never deleted.
    """

    __tablename__ = "notifications"

    notification_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    recipient_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=False,
        index=True,
    )

    type: Mapped[NotificationType] = mapped_column(
        sqlalchemy_Enum(
            NotificationType, name="notification_type", values_callable=enum_values
        ),
        nullable=False,
        default=NotificationType.APPOINTMENT,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    appointment_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("appointments.appointment_id"),
        nullable=True,
    )


__all__ = ["Notification", "NotificationType"]
