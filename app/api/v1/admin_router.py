# app/api/v1/admin_router.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_settings_cache, require_role
from app.db import get_db
from app.db.models import UserRole
from app.db.schemas import SystemSettingsResponse, SystemSettingsUpdate
from app.services.v1 import SettingsCache, SettingsService

admin_router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_role(UserRole.ADMIN))],
)


@admin_router.get("/settings", response_model=SystemSettingsResponse)
async def get_settings(db: AsyncSession = Depends(get_db)):
    return await SettingsService(db).get_settings()


@admin_router.put(
    "/settings",
    response_model=SystemSettingsResponse,
    description="Partial update. Takes effect for the maintenance check immediately.",
)
async def update_settings(
    payload: SystemSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    cache: SettingsCache = Depends(get_settings_cache),
):
    return await SettingsService(db).update_settings(payload, cache=cache)


__all__ = ["admin_router"]
