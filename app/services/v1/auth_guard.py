# app/services/v1/auth_guard.py
"""
Bearer-token authentication and permission checks.

Every permission decision in the API goes through AuthorizationGuard;
routers reach it via the dependencies in app/api/deps.py.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt as jose_jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from app.db.models import User, UserRole, StaffPermission
from common import AuthConfig
from common.api_error import UnauthorizedError, ForbiddenError
from common.logger import get_app_logger

logger = get_app_logger(__name__)

ALL_PERMISSIONS: frozenset[str] = frozenset(p.value for p in StaffPermission)


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole
    permissions: frozenset[str] = field(default_factory=frozenset)
    staff_id: Optional[str] = None
    center_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role == UserRole.STAFF

    @property
    def is_citizen(self) -> bool:
        return self.role == UserRole.USER

    def has_permission(self, permission: str) -> bool:
        if self.is_admin:
            return True
        return StaffPermission(permission).value in self.permissions


def issue_token(
    auth_config: AuthConfig,
    user_id: str,
    role: UserRole,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign an access token for `user_id`."""
    expire = datetime.now(tz=timezone.utc) + (
        expires_delta or timedelta(minutes=auth_config.token_ttl_minutes)
    )
    to_encode = {"sub": user_id, "role": UserRole(role).value, "exp": expire}
    return jose_jwt.encode(
        to_encode,
        auth_config.jwt_secret.get_secret_value(),
        algorithm=auth_config.jwt_algorithm,
    )


class AuthorizationGuard:
    def __init__(self, db: AsyncSession, auth_config: AuthConfig):
        self.db = db
        self.auth_config = auth_config

    def decode(self, token: Optional[str]) -> dict:
        if not token:
            raise UnauthorizedError("Access denied. No token provided.")
        try:
            return jose_jwt.decode(
                token,
                self.auth_config.jwt_secret.get_secret_value(),
                algorithms=[self.auth_config.jwt_algorithm],
            )
        except ExpiredSignatureError as e:
            raise UnauthorizedError("Token expired.") from e
        except JWTError as e:
            logger.debug("Token rejected", error=str(e))
            raise UnauthorizedError() from e

    async def authenticate(self, token: Optional[str]) -> Principal:
        """
        Resolve the caller behind a bearer token.

        Raises:
            UnauthorizedError: Missing, malformed, expired token or unknown/inactive user
            ForbiddenError: Staff account without an active staff record
        """
        payload = self.decode(token)
        user_id = payload.get("sub")
        if not user_id:
            raise UnauthorizedError()

        query = (
            select(User)
            .options(selectinload(User.staff_profile))
            .where(User.user_id == user_id)
            .execution_options(logging_token="AuthorizationGuard.authenticate")
        )
        user = (await self.db.execute(query)).scalar_one_or_none()

        if user is None or not user.is_active:
            raise UnauthorizedError("Access denied. User not found or inactive.")

        if user.role == UserRole.ADMIN:
            return Principal(user_id=user.user_id, role=user.role, permissions=ALL_PERMISSIONS)

        if user.role == UserRole.STAFF:
            staff = user.staff_profile
            if staff is None or not staff.is_active:
                raise ForbiddenError("Access denied. Staff account not found or inactive.")
            return Principal(
                user_id=user.user_id,
                role=user.role,
                permissions=staff.granted_permissions(),
                staff_id=staff.staff_id,
                center_id=staff.center_id,
            )

        return Principal(user_id=user.user_id, role=user.role)

    @staticmethod
    def require(principal: Principal, permission: str) -> None:
        if not principal.has_permission(permission):
            raise ForbiddenError(
                f"Access denied. Missing permission: {StaffPermission(permission).value}"
            )

    @staticmethod
    def require_any(principal: Principal, *permissions: str) -> None:
        if not any(principal.has_permission(p) for p in permissions):
            names = ", ".join(StaffPermission(p).value for p in permissions)
            raise ForbiddenError(f"Access denied. Requires one of: {names}")

    @staticmethod
    def require_role(principal: Principal, *roles: UserRole) -> None:
        if principal.role not in roles:
            raise ForbiddenError("Access denied.")


__all__ = ["Principal", "AuthorizationGuard", "issue_token", "ALL_PERMISSIONS"]
