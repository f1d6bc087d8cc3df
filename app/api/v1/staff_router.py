# app/api/v1/staff_router.py
from datetime import date
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import require_role
from app.db import get_db
from app.db.models import UserRole
from app.db.schemas import DashboardSnapshot
from app.services.v1 import DashboardService, Principal
from common.api_error import InputValidationError
from common.logger.logger_middleware import enable_perf_headers
from common.scripts import get_period_date_range

staff_router = APIRouter(
    prefix="/staff",
    tags=["Staff"],
    dependencies=[Depends(enable_perf_headers)],
)


@staff_router.get(
    "/dashboard",
    response_model=DashboardSnapshot,
    summary="Staff dashboard",
    description="""
    Status counts, today's revenue, per-service counts and upcoming work for
    one center.

    Either `period` (today | week | month) or an explicit
    `startDate`/`endDate` pair; defaults to today. Admins must pass
    `centerId`.
    """,
)
async def get_dashboard(
    period: Optional[Literal["today", "week", "month"]] = Query(None),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    center_id: Optional[str] = Query(None, alias="centerId"),
    principal: Principal = Depends(require_role(UserRole.STAFF, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    today = date.today()
    if start_date or end_date:
        if not (start_date and end_date):
            raise InputValidationError("startDate and endDate must be given together")
        start, end = start_date, end_date
    else:
        start, end = get_period_date_range(period or "today", today)

    return await DashboardService(db).get_snapshot(
        principal, start, end, today=today, center_id=center_id
    )


__all__ = ["staff_router"]
