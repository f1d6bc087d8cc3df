# tests/test_auth_guard.py
from datetime import timedelta

import pytest
from jose import jwt as jose_jwt

from app.db.models import Staff, StaffPermission, User, UserRole
from app.services.v1 import ALL_PERMISSIONS, AuthorizationGuard, Principal
from common.api_error import ForbiddenError, UnauthorizedError

from .conftest import CONFIG

pytestmark = pytest.mark.anyio


async def test_staff_principal_carries_center_and_default_permissions(world, token_for, session):
    principal = await AuthorizationGuard(session, CONFIG.auth).authenticate(
        token_for(world.staff_user)
    )

    assert principal.role == UserRole.STAFF
    assert principal.center_id == world.center.center_id
    assert principal.has_permission(StaffPermission.UPDATE_STATUS)
    assert not principal.has_permission(StaffPermission.VIEW_REPORTS)


async def test_admin_holds_every_permission(world, token_for, session):
    principal = await AuthorizationGuard(session, CONFIG.auth).authenticate(token_for(world.admin))

    assert principal.permissions == ALL_PERMISSIONS
    assert all(principal.has_permission(p) for p in StaffPermission)
    assert principal.center_id is None


async def test_citizen_has_no_staff_permissions(world, token_for, session):
    principal = await AuthorizationGuard(session, CONFIG.auth).authenticate(
        token_for(world.citizen)
    )
    assert principal.is_citizen
    with pytest.raises(ForbiddenError):
        AuthorizationGuard.require(principal, StaffPermission.MANAGE_APPOINTMENTS)


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
async def test_missing_or_malformed_token_is_unauthorized(token, session):
    with pytest.raises(UnauthorizedError):
        await AuthorizationGuard(session, CONFIG.auth).authenticate(token)


async def test_expired_token_reports_expiry(world, token_for, session):
    expired = token_for(world.staff_user, expires_delta=timedelta(minutes=-5))

    with pytest.raises(UnauthorizedError) as exc_info:
        await AuthorizationGuard(session, CONFIG.auth).authenticate(expired)
    assert exc_info.value.message == "Token expired."


async def test_token_signed_with_another_key_is_unauthorized(world, session):
    forged = jose_jwt.encode(
        {"sub": world.admin.user_id, "role": "admin"}, "some-other-secret", algorithm="HS256"
    )
    with pytest.raises(UnauthorizedError):
        await AuthorizationGuard(session, CONFIG.auth).authenticate(forged)


async def test_unknown_or_inactive_user_is_unauthorized(world, token_for, session):
    guard = AuthorizationGuard(session, CONFIG.auth)
    ghost = jose_jwt.encode(
        {"sub": "no-such-user", "role": "user"},
        CONFIG.auth.jwt_secret.get_secret_value(),
        algorithm="HS256",
    )
    with pytest.raises(UnauthorizedError):
        await guard.authenticate(ghost)

    citizen = await session.get(User, world.citizen.user_id)
    citizen.is_active = False
    await session.commit()
    with pytest.raises(UnauthorizedError):
        await guard.authenticate(token_for(world.citizen))


async def test_staff_without_active_record_is_forbidden(world, token_for, session):
    staff = await session.get(Staff, world.staff.staff_id)
    staff.is_active = False
    await session.commit()

    with pytest.raises(ForbiddenError):
        await AuthorizationGuard(session, CONFIG.auth).authenticate(token_for(world.staff_user))


def test_require_any_accepts_one_of_several():
    principal = Principal(
        user_id="u-1",
        role=UserRole.STAFF,
        permissions=frozenset({StaffPermission.UPLOAD_DOCUMENTS.value}),
        center_id="c-1",
    )
    AuthorizationGuard.require_any(
        principal, StaffPermission.UPDATE_STATUS, StaffPermission.UPLOAD_DOCUMENTS
    )
    with pytest.raises(ForbiddenError):
        AuthorizationGuard.require_any(principal, StaffPermission.VIEW_ANALYTICS)


def test_revoked_permission_is_not_granted():
    staff = Staff(
        user_id="u-1",
        center_id="c-1",
        is_active=True,
        permissions=[
            {"action": "update_status", "granted": False},
            {"action": "add_comments", "granted": True},
        ],
    )
    assert staff.granted_permissions() == frozenset({"add_comments"})
