# scripts/db/seed_db.py
"""
Demo data: one center, a few services, and one user per role.

Re-running is safe: rows are matched by email / name and only missing ones
are inserted.
"""

from decimal import Decimal
from typing import Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.db import DbManager
from app.db.models import (
    Center,
    Service,
    Staff,
    StaffRole,
    SystemSettings,
    User,
    UserRole,
)
from common.logger import get_app_logger

logger = get_app_logger(__name__)

DEMO_CENTER: dict[str, Any] = {
    "name": "Akshaya Center Thampanoor",
    "address": "Thampanoor, Thiruvananthapuram, Kerala",
    "contact_phone": "+91-471-2330000",
}

DEMO_SERVICES: list[dict[str, Any]] = [
    {
        "name": "Income Certificate",
        "category": "Certificates",
        "fee": Decimal("50.00"),
        "processing_time": "3-5 days",
        "documents": [
            {
                "name": "Aadhaar Card",
                "requirement": "mandatory",
                "alternatives": [{"name": "Voter ID"}, {"name": "Passport"}],
            },
            {"name": "Ration Card", "requirement": "mandatory", "alternatives": []},
            {"name": "Salary Slip", "requirement": "optional", "alternatives": []},
        ],
    },
    {
        "name": "Passport Application",
        "category": "Identity",
        "fee": Decimal("150.00"),
        "processing_time": "30 days",
        "documents": [
            {
                "name": "Birth Certificate",
                "requirement": "mandatory",
                "alternatives": [{"name": "SSLC Certificate"}],
            },
            {
                "name": "Aadhaar Card",
                "requirement": "mandatory",
                "alternatives": [{"name": "Voter ID"}],
            },
        ],
    },
]

DEMO_USERS: list[dict[str, Any]] = [
    {"name": "Anil Kumar", "email": "citizen@example.com", "role": UserRole.USER},
    {"name": "Priya Nair", "email": "staff@example.com", "role": UserRole.STAFF},
    {"name": "Portal Admin", "email": "admin@example.com", "role": UserRole.ADMIN},
]


async def _get_or_create(
    session: AsyncSession, model, lookup: dict[str, Any], values: dict[str, Any]
):
    query = select(model).filter_by(**lookup)
    existing = (await session.execute(query)).scalar_one_or_none()
    if existing is not None:
        return existing, False
    obj = model(**lookup, **values)
    session.add(obj)
    await session.flush()
    return obj, True


async def seed_db(db_manager: DbManager) -> dict[str, Any]:
    """
    Insert the demo rows that are missing.

    Returns:
        {"center": Center, "services": [...], "users": {role: User}, "created": int}
    """
    created = 0
    async with db_manager.session() as session:
        center, is_new = await _get_or_create(
            session,
            Center,
            {"name": DEMO_CENTER["name"]},
            {k: v for k, v in DEMO_CENTER.items() if k != "name"},
        )
        created += is_new

        services = []
        for row in DEMO_SERVICES:
            service, is_new = await _get_or_create(
                session,
                Service,
                {"name": row["name"]},
                {k: v for k, v in row.items() if k != "name"},
            )
            services.append(service)
            created += is_new

        users: dict[UserRole, User] = {}
        for row in DEMO_USERS:
            user, is_new = await _get_or_create(
                session,
                User,
                {"email": row["email"]},
                {"name": row["name"], "role": row["role"]},
            )
            users[row["role"]] = user
            created += is_new

        _, is_new = await _get_or_create(
            session,
            Staff,
            {"user_id": users[UserRole.STAFF].user_id},
            {"center_id": center.center_id, "staff_role": StaffRole.SUPERVISOR},
        )
        created += is_new

        _, is_new = await _get_or_create(
            session, SystemSettings, {"settings_id": 1}, {"maintenance_mode": False}
        )
        created += is_new

    logger.info("Demo data seeded", created=created)
    return {"center": center, "services": services, "users": users, "created": created}


__all__ = ["seed_db", "DEMO_CENTER", "DEMO_SERVICES", "DEMO_USERS"]
