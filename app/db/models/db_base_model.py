# app/db/models/db_base_model.py
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import DateTime
from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class DbBaseModel(DeclarativeBase):
    __abstract__ = True  # prevents SQLAlchemy from creating a table for this base

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    @staticmethod
    def generate_uuid():
        return str(uuid4())

    @staticmethod
    def generate_short_code():
        # 10 decimal digits derived from a UUIDv4
        return str(uuid4().int % 10**10).zfill(10)


def enum_values(enum_cls) -> list[str]:
    """Persist str-enums by value ("in_progress") rather than member name."""
    return [member.value for member in enum_cls]


__all__ = ["DbBaseModel", "utc_now", "enum_values"]
