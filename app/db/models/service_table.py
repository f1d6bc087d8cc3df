# app/db/models/service_table.py
from __future__ import annotations
from decimal import Decimal
from typing import Any, Optional
from sqlalchemy import String, Text, Boolean, Numeric, JSON
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel


class Service(DbBaseModel):
    __tablename__ = "services"

    service_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    category: Mapped[str] = mapped_column(String(80), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )

    processing_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # [{"name": "Aadhaar Card", "requirement": "mandatory", "image_url": ...,
    #   "alternatives": [{"name": "Voter ID", "image_url": ...}]}]
    documents: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def accepted_document_names(self) -> set[str]:
        """Every primary and alternative document name this service accepts."""
        names: set[str] = set()
        for doc in self.documents or []:
            if doc.get("name"):
                names.add(doc["name"])
            for alt in doc.get("alternatives") or []:
                if alt.get("name"):
                    names.add(alt["name"])
        return names


__all__ = ["Service"]
