# app/db/models/appointment_table.py
from __future__ import annotations
from typing import TYPE_CHECKING, Optional
from enum import Enum
from sqlalchemy import (
    String,
    Date,
    DateTime,
    Boolean,
    ForeignKey,
    Integer,
    Text,
    JSON,
    Enum as sqlalchemy_Enum,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import date, datetime
from .db_base_model import DbBaseModel, enum_values, utc_now


class AppointmentStatus(str, Enum):
    PENDING = "pending"  # Booked by the citizen, awaiting staff
    CONFIRMED = "confirmed"  # Accepted by staff
    IN_PROGRESS = "in_progress"  # Citizen is being served at the counter
    COMPLETED = "completed"  # Service delivered
    CANCELLED = "cancelled"  # Called off by staff, reason recorded


class CommentAuthorType(str, Enum):
    USER = "user"
    STAFF = "staff"


if TYPE_CHECKING:
    from .user_table import User
    from .service_table import Service
    from .center_table import Center


class Appointment(DbBaseModel):
    __tablename__ = "appointments"

    appointment_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    reference_code: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        unique=True,
        default=DbBaseModel.generate_short_code,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=False,
        index=True,
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.service_id"),
        nullable=False,
    )

    center_id: Mapped[str] = mapped_column(
        ForeignKey("centers.center_id"),
        nullable=False,
        index=True,
    )

    appointment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    time_slot: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[AppointmentStatus] = mapped_column(
        sqlalchemy_Enum(
            AppointmentStatus, name="appointment_status", values_callable=enum_values
        ),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Non-null exactly when status == completed
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user: Mapped["User"] = relationship("User")
    service: Mapped[Optional["Service"]] = relationship("Service")
    center: Mapped["Center"] = relationship("Center", back_populates="appointments")

    selected_documents: Mapped[list["SelectedDocument"]] = relationship(
        "SelectedDocument",
        back_populates="appointment",
        order_by="SelectedDocument.position",
        cascade="all, delete-orphan",
    )

    document_validation: Mapped[Optional["DocumentValidation"]] = relationship(
        "DocumentValidation",
        back_populates="appointment",
        uselist=False,
        cascade="all, delete-orphan",
    )

    comments: Mapped[list["AppointmentComment"]] = relationship(
        "AppointmentComment",
        back_populates="appointment",
        order_by="AppointmentComment.comment_id",
        cascade="all, delete-orphan",
    )

    status_history: Mapped[list["StatusHistoryEntry"]] = relationship(
        "StatusHistoryEntry",
        back_populates="appointment",
        order_by="StatusHistoryEntry.entry_id",
        cascade="all, delete-orphan",
    )


class SelectedDocument(DbBaseModel):
    """Document the citizen committed to bring; written once at booking."""

    __tablename__ = "appointment_documents"

    document_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    document_name: Mapped[str] = mapped_column(String(150), nullable=False)

    is_alternative: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    alternative_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    selected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )

    appointment: Mapped["Appointment"] = relationship(
        "Appointment", back_populates="selected_documents"
    )

    @property
    def display_name(self) -> str:
        """Name staff see and validate against: the alternative when one was chosen."""
        if self.is_alternative and self.alternative_name:
            return self.alternative_name
        return self.document_name


class DocumentValidation(DbBaseModel):
    """Latest staff verdict on an appointment's documents (one row, overwritten)."""

    __tablename__ = "document_validations"

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
        primary_key=True,
    )

    is_validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    validated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    validated_by: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.user_id"), nullable=True
    )

    staff_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    missing_documents: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list
    )

    appointment: Mapped["Appointment"] = relationship(
        "Appointment", back_populates="document_validation"
    )


class AppointmentComment(DbBaseModel):
    __tablename__ = "appointment_comments"

    comment_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    author_id: Mapped[str] = mapped_column(ForeignKey("users.user_id"), nullable=False)

    author_type: Mapped[CommentAuthorType] = mapped_column(
        sqlalchemy_Enum(
            CommentAuthorType, name="comment_author_type", values_callable=enum_values
        ),
        nullable=False,
    )

    content: Mapped[str] = mapped_column(Text, nullable=False)

    appointment: Mapped["Appointment"] = relationship(
        "Appointment", back_populates="comments"
    )


class StatusHistoryEntry(DbBaseModel):
    """Audit row written by every successful status transition."""

    __tablename__ = "appointment_status_history"

    entry_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    appointment_id: Mapped[str] = mapped_column(
        ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    from_status: Mapped[AppointmentStatus] = mapped_column(
        sqlalchemy_Enum(
            AppointmentStatus, name="appointment_status", values_callable=enum_values
        ),
        nullable=False,
    )

    to_status: Mapped[AppointmentStatus] = mapped_column(
        sqlalchemy_Enum(
            AppointmentStatus, name="appointment_status", values_callable=enum_values
        ),
        nullable=False,
    )

    changed_by: Mapped[str] = mapped_column(ForeignKey("users.user_id"), nullable=False)

    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    appointment: Mapped["Appointment"] = relationship(
        "Appointment", back_populates="status_history"
    )


__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentComment",
    "CommentAuthorType",
    "DocumentValidation",
    "SelectedDocument",
    "StatusHistoryEntry",
]
