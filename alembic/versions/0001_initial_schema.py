"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS: dict[str, tuple[str, ...]] = {
    "user_role": ("user", "staff", "admin"),
    "staff_role": ("staff", "supervisor"),
    "appointment_status": ("pending", "confirmed", "in_progress", "completed", "cancelled"),
    "comment_author_type": ("user", "staff"),
    "notification_type": ("appointment", "system", "announcement"),
}


def _enum(name: str) -> sa.Enum:
    # PostgreSQL types are created once up front; tables only reference them
    values = ENUMS[name]
    return sa.Enum(*values, name=name).with_variant(
        postgresql.ENUM(*values, name=name, create_type=False), "postgresql"
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("user_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(254), nullable=False, unique=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "centers",
        sa.Column("center_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("contact_phone", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "services",
        sa.Column("service_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("category", sa.String(80), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("fee", sa.Numeric(10, 2), nullable=False),
        sa.Column("processing_time", sa.String(50), nullable=True),
        sa.Column("documents", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "staff",
        sa.Column("staff_id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False, unique=True
        ),
        sa.Column("center_id", sa.String(36), sa.ForeignKey("centers.center_id"), nullable=False),
        sa.Column("staff_role", _enum("staff_role"), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("working_hours", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_staff_center_id", "staff", ["center_id"])

    op.create_table(
        "appointments",
        sa.Column("appointment_id", sa.String(36), primary_key=True),
        sa.Column("reference_code", sa.String(10), nullable=False, unique=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column(
            "service_id", sa.String(36), sa.ForeignKey("services.service_id"), nullable=False
        ),
        sa.Column("center_id", sa.String(36), sa.ForeignKey("centers.center_id"), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("time_slot", sa.String(20), nullable=False),
        sa.Column("status", _enum("appointment_status"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_appointments_user_id", "appointments", ["user_id"])
    op.create_index("ix_appointments_center_id", "appointments", ["center_id"])
    op.create_index("ix_appointments_appointment_date", "appointments", ["appointment_date"])

    op.create_table(
        "appointment_documents",
        sa.Column("document_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.String(36),
            sa.ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("document_name", sa.String(150), nullable=False),
        sa.Column("is_alternative", sa.Boolean(), nullable=False),
        sa.Column("alternative_name", sa.String(150), nullable=True),
        sa.Column("selected_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_appointment_documents_appointment_id", "appointment_documents", ["appointment_id"]
    )

    op.create_table(
        "document_validations",
        sa.Column(
            "appointment_id",
            sa.String(36),
            sa.ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("is_validated", sa.Boolean(), nullable=False),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("validated_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("staff_notes", sa.Text(), nullable=True),
        sa.Column("missing_documents", sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "appointment_comments",
        sa.Column("comment_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.String(36),
            sa.ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("author_type", _enum("comment_author_type"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_appointment_comments_appointment_id", "appointment_comments", ["appointment_id"]
    )

    op.create_table(
        "appointment_status_history",
        sa.Column("entry_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "appointment_id",
            sa.String(36),
            sa.ForeignKey("appointments.appointment_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("from_status", _enum("appointment_status"), nullable=False),
        sa.Column("to_status", _enum("appointment_status"), nullable=False),
        sa.Column("changed_by", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_appointment_status_history_appointment_id",
        "appointment_status_history",
        ["appointment_id"],
    )

    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.String(36), primary_key=True),
        sa.Column("recipient_id", sa.String(36), sa.ForeignKey("users.user_id"), nullable=False),
        sa.Column("type", _enum("notification_type"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column(
            "appointment_id",
            sa.String(36),
            sa.ForeignKey("appointments.appointment_id"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_notifications_recipient_id", "notifications", ["recipient_id"])

    op.create_table(
        "system_settings",
        sa.Column("settings_id", sa.Integer(), primary_key=True),
        sa.Column("maintenance_mode", sa.Boolean(), nullable=False),
        sa.Column("maintenance_message", sa.Text(), nullable=False),
        sa.Column("estimated_downtime", sa.String(100), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in (
        "system_settings",
        "notifications",
        "appointment_status_history",
        "appointment_comments",
        "document_validations",
        "appointment_documents",
        "appointments",
        "staff",
        "services",
        "centers",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name, values in ENUMS.items():
            postgresql.ENUM(*values, name=name).drop(bind, checkfirst=True)
