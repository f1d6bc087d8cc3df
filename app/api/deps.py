# app/api/deps.py
"""
Request-scoped dependencies: the authenticated principal and the
app-wide collaborators the lifespan puts on app.state.
"""

from typing import Any, Callable, Coroutine, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from app.db import get_db
from app.db.models import StaffPermission, UserRole
from app.services.v1 import (
    AuthorizationGuard,
    NotificationDispatcher,
    Principal,
    SettingsCache,
)
from common import AuthConfig

bearer_scheme = HTTPBearer(auto_error=False)


def _from_state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not found in app.state. Ensure lifespan is configured.")
    return value


def get_auth_config(request: Request) -> AuthConfig:
    return _from_state(request, "auth_config")


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return _from_state(request, "notification_dispatcher")


def get_settings_cache(request: Request) -> SettingsCache:
    return _from_state(request, "settings_cache")


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
    auth_config: AuthConfig = Depends(get_auth_config),
) -> Principal:
    token = credentials.credentials if credentials else None
    principal = await AuthorizationGuard(db, auth_config).authenticate(token)
    # Picked up by RequestLoggingMiddleware for the access log line
    request.state.user_id = principal.user_id
    request.state.role = principal.role.value
    return principal


def require_permission(
    *permissions: StaffPermission,
) -> Callable[..., Coroutine[Any, Any, Principal]]:
    """
    Dependency factory: principal holding at least one of `permissions`.

        @router.put("/x", dependencies=[Depends(require_permission(StaffPermission.UPDATE_STATUS))])
    """

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        AuthorizationGuard.require_any(principal, *permissions)
        return principal

    return dependency


def require_role(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, Principal]]:
    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        AuthorizationGuard.require_role(principal, *roles)
        return principal

    return dependency


__all__ = [
    "bearer_scheme",
    "get_auth_config",
    "get_dispatcher",
    "get_settings_cache",
    "get_principal",
    "require_permission",
    "require_role",
]
