# app/api/v1/notification_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_principal
from app.db import get_db
from app.db.schemas import MarkReadResponse, NotificationListResponse, NotificationResponse
from app.services.v1 import NotificationService, Principal

notification_router = APIRouter(
    prefix="/notifications",
    tags=["Notifications"],
)


@notification_router.get(
    "",
    response_model=NotificationListResponse,
    summary="Caller's notifications",
    description="Newest first, at most 50, with the unread total.",
)
async def list_notifications(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    items, unread_count = await NotificationService(db).list_for_recipient(principal.user_id)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in items],
        unread_count=unread_count,
    )


@notification_router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={404: {"description": "Notification not found"}},
)
async def mark_notification_read(
    notification_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService(db).mark_read(principal.user_id, notification_id)


@notification_router.post("/mark-read", response_model=MarkReadResponse)
async def mark_all_read(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    updated = await NotificationService(db).mark_all_read(principal.user_id)
    return MarkReadResponse(updated=updated)


__all__ = ["notification_router"]
