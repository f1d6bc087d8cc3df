# app/db/schemas/appointment_schemas.py
from pydantic import Field, model_validator
from datetime import date, datetime
from typing import Optional
from ..models import AppointmentStatus, CommentAuthorType
from .base_schema import ApiModel


class SelectedDocumentIn(ApiModel):
    document_name: str = Field(..., min_length=1, max_length=150)
    is_alternative: bool = False
    alternative_name: Optional[str] = Field(None, min_length=1, max_length=150)

    @model_validator(mode="after")
    def require_alternative_name(self) -> "SelectedDocumentIn":
        if self.is_alternative and not self.alternative_name:
            raise ValueError("alternativeName is required when isAlternative is true")
        return self


class SelectedDocumentResponse(ApiModel):
    document_name: str
    is_alternative: bool
    alternative_name: Optional[str] = None
    display_name: str
    selected_at: datetime


class AppointmentCreate(ApiModel):
    service_id: str = Field(..., min_length=1)
    center_id: str = Field(..., min_length=1)
    appointment_date: date = Field(..., description="Calendar date of the visit")
    time_slot: str = Field(
        ...,
        pattern=r"^(0[1-9]|1[0-2]):[0-5][0-9] (AM|PM)$",
        examples=["10:00 AM"],
    )
    selected_documents: list[SelectedDocumentIn] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=1000)


class StatusUpdateRequest(ApiModel):
    status: AppointmentStatus
    reason: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)


class CommentCreate(ApiModel):
    comment: str = Field(..., min_length=1, max_length=2000)


class CommentResponse(ApiModel):
    comment_id: int
    author_id: str
    author_type: CommentAuthorType
    content: str
    created_at: datetime


class DocumentValidationUpdate(ApiModel):
    is_validated: bool = False
    missing_documents: list[str] = Field(default_factory=list)
    staff_notes: Optional[str] = Field(None, max_length=2000)


class DocumentValidationResponse(ApiModel):
    is_validated: bool
    validated_at: Optional[datetime] = None
    validated_by: Optional[str] = None
    staff_notes: Optional[str] = None
    missing_documents: list[str] = Field(default_factory=list)


class MissingDocumentsNotice(ApiModel):
    missing_documents: list[str] = Field(default_factory=list)
    alternatives: Optional[str] = Field(None, max_length=1000)
    message: Optional[str] = Field(None, max_length=1000)


class StatusHistoryResponse(ApiModel):
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    changed_by: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class ServiceSummary(ApiModel):
    service_id: str
    name: str
    category: str
    fee: float
    processing_time: Optional[str] = None


class AppointmentSummary(ApiModel):
    appointment_id: str
    reference_code: str
    user_id: str
    service_id: str
    center_id: str
    appointment_date: date
    time_slot: str
    status: AppointmentStatus
    created_at: datetime
    completed_at: Optional[datetime] = None


class AppointmentResponse(AppointmentSummary):
    notes: Optional[str] = None
    service: Optional[ServiceSummary] = None
    selected_documents: list[SelectedDocumentResponse] = Field(default_factory=list)
    document_validation: Optional[DocumentValidationResponse] = None
    comments: list[CommentResponse] = Field(default_factory=list)
    status_history: list[StatusHistoryResponse] = Field(default_factory=list)


__all__ = [
    "SelectedDocumentIn",
    "SelectedDocumentResponse",
    "AppointmentCreate",
    "StatusUpdateRequest",
    "CommentCreate",
    "CommentResponse",
    "DocumentValidationUpdate",
    "DocumentValidationResponse",
    "MissingDocumentsNotice",
    "StatusHistoryResponse",
    "ServiceSummary",
    "AppointmentSummary",
    "AppointmentResponse",
]
