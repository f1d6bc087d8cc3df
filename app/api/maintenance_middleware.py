# app/api/maintenance_middleware.py
"""
Answers 503 for every request while maintenance mode is on.

Admin, auth and health routes stay reachable so an admin can switch the
mode back off. If the settings cannot be read the request goes through.
"""

from datetime import datetime
from typing import Awaitable, Callable, Sequence
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from common.logger import get_app_logger

EXEMPT_PREFIXES: tuple[str, ...] = ("/admin", "/auth", "/health")


class MaintenanceModeMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        exempt_prefixes: Sequence[str] = EXEMPT_PREFIXES,
    ):
        super().__init__(app)
        self.exempt_prefixes = tuple(exempt_prefixes)
        self.logger = get_app_logger(__name__)

    def is_exempt(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix + "/")
            for prefix in self.exempt_prefixes
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if self.is_exempt(request.url.path):
            return await call_next(request)

        state = request.app.state
        cache = getattr(state, "settings_cache", None)
        db_manager = getattr(state, "db_manager", None)
        if cache is None or db_manager is None:
            return await call_next(request)

        try:
            async with db_manager.session() as session:
                settings = await cache.get(session)
        except Exception as e:
            self.logger.warning(
                "Maintenance check skipped: settings unavailable",
                error=str(e),
                error_type=type(e).__name__,
            )
            return await call_next(request)

        if settings.maintenance_mode:
            return JSONResponse(
                status_code=503,
                content={
                    "error": "MAINTENANCE_MODE",
                    "message": settings.maintenance_message,
                    "maintenanceMode": True,
                    "estimatedDowntime": settings.estimated_downtime,
                    "timestamp": datetime.now().isoformat(),
                },
            )

        return await call_next(request)


__all__ = ["MaintenanceModeMiddleware", "EXEMPT_PREFIXES"]
