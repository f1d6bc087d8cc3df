# app/db/schemas/notification_schemas.py
from datetime import datetime
from typing import Optional
from pydantic import Field
from ..models import NotificationType
from .base_schema import ApiModel


class NotificationResponse(ApiModel):
    notification_id: str
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    is_read: bool
    appointment_id: Optional[str] = None
    created_at: datetime


class NotificationListResponse(ApiModel):
    items: list[NotificationResponse] = Field(default_factory=list)
    unread_count: int = 0


class MarkReadResponse(ApiModel):
    updated: int


__all__ = ["NotificationResponse", "NotificationListResponse", "MarkReadResponse"]
