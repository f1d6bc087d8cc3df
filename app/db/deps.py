# app/db/deps.py
from contextlib import nullcontext
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import AsyncGenerator
from common import request_timer_context_var


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request, taken from the DbManager the lifespan stored.

    Time the session stays open is charged to the request's "db" timing.
    """
    manager = getattr(request.app.state, "db_manager", None)
    if manager is None:
        raise RuntimeError("DbManager not found in app.state. Ensure lifespan is configured.")

    timer = request_timer_context_var.get()
    with timer.capture("db") if timer is not None else nullcontext():
        async with manager.session() as session:
            yield session


__all__ = ["get_db"]
