# tests/test_status_machine.py
import asyncio
import itertools

import pytest
from sqlalchemy import select

from app.db.models import Appointment, AppointmentStatus, Notification, StatusHistoryEntry
from app.services.v1 import (
    ALLOWED_TRANSITIONS,
    AppointmentStateMachine,
    NotificationDispatcher,
    can_transition,
    is_terminal,
)
from common.api_error import (
    ForbiddenError,
    IllegalTransitionError,
    InputValidationError,
    NotFoundError,
)

pytestmark = pytest.mark.anyio

S = AppointmentStatus
LEGAL_EDGES = {
    (S.PENDING, S.CONFIRMED),
    (S.PENDING, S.CANCELLED),
    (S.CONFIRMED, S.IN_PROGRESS),
    (S.CONFIRMED, S.CANCELLED),
    (S.IN_PROGRESS, S.COMPLETED),
    (S.IN_PROGRESS, S.CANCELLED),
}
ALL_PAIRS = list(itertools.product(list(S), repeat=2))


def test_transition_table_has_exactly_the_lifecycle_edges():
    edges = {(src, dst) for src, targets in ALLOWED_TRANSITIONS.items() for dst in targets}
    assert edges == LEGAL_EDGES
    assert is_terminal(S.COMPLETED)
    assert is_terminal(S.CANCELLED)
    assert not is_terminal(S.PENDING)


@pytest.mark.parametrize("current,target", ALL_PAIRS, ids=lambda s: s.value)
async def test_every_status_pair(current, target, world, make_appointment, principal_for, session):
    """Legal edges succeed, every other pair is rejected and leaves the row untouched."""
    appointment = await make_appointment(world, status=current)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    staff = await principal_for(world.staff_user)

    if (current, target) in LEGAL_EDGES:
        result = await machine.transition(
            appointment.appointment_id, target, staff, reason="Citizen request"
        )
        assert result.appointment.status == target
        assert can_transition(current, target)
    else:
        with pytest.raises(IllegalTransitionError):
            await machine.transition(
                appointment.appointment_id, target, staff, reason="Citizen request"
            )
        await session.rollback()
        stored = await session.get(Appointment, appointment.appointment_id)
        await session.refresh(stored)
        assert stored.status == current


async def test_completed_at_set_only_on_completion(world, make_appointment, principal_for, session):
    appointment = await make_appointment(world)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    staff = await principal_for(world.staff_user)

    for target in (S.CONFIRMED, S.IN_PROGRESS):
        result = await machine.transition(appointment.appointment_id, target, staff)
        assert result.appointment.completed_at is None

    result = await machine.transition(appointment.appointment_id, S.COMPLETED, staff)
    assert result.appointment.status == S.COMPLETED
    assert result.appointment.completed_at is not None


async def test_full_lifecycle_writes_history_and_notifications(
    world, make_appointment, principal_for, session
):
    appointment = await make_appointment(world)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    staff = await principal_for(world.staff_user)

    await machine.transition(appointment.appointment_id, S.CONFIRMED, staff)
    await machine.transition(appointment.appointment_id, S.IN_PROGRESS, staff, notes="Counter 2")
    result = await machine.transition(appointment.appointment_id, S.COMPLETED, staff)

    history = result.appointment.status_history
    assert [(h.from_status, h.to_status) for h in history] == [
        (S.PENDING, S.CONFIRMED),
        (S.CONFIRMED, S.IN_PROGRESS),
        (S.IN_PROGRESS, S.COMPLETED),
    ]
    assert all(h.changed_by == world.staff_user.user_id for h in history)
    assert history[1].notes == "Counter 2"

    notifications = (
        await session.execute(
            select(Notification).where(Notification.recipient_id == world.citizen.user_id)
        )
    ).scalars().all()
    assert sorted(n.title for n in notifications) == [
        "Appointment completed",
        "Appointment confirmed",
        "Appointment in progress",
    ]


@pytest.mark.parametrize("reason", [None, "", "   "])
async def test_cancel_requires_reason(reason, world, make_appointment, principal_for, session):
    appointment = await make_appointment(world)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    staff = await principal_for(world.staff_user)

    with pytest.raises(InputValidationError):
        await machine.transition(appointment.appointment_id, S.CANCELLED, staff, reason=reason)


async def test_cancel_with_reason_notifies_citizen(world, make_appointment, principal_for, session):
    appointment = await make_appointment(world, status=S.CONFIRMED)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    staff = await principal_for(world.staff_user)

    result = await machine.transition(
        appointment.appointment_id, S.CANCELLED, staff, reason="Center closed for holiday"
    )

    assert result.appointment.status == S.CANCELLED
    assert result.appointment.completed_at is None
    assert result.appointment.status_history[-1].reason == "Center closed for holiday"
    [notification] = result.notifications
    assert notification.recipient_id == world.citizen.user_id
    assert notification.message == "Appointment cancelled: Center closed for holiday"


async def test_unknown_appointment_is_not_found(world, principal_for, session):
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    staff = await principal_for(world.staff_user)

    with pytest.raises(NotFoundError):
        await machine.transition("does-not-exist", S.CONFIRMED, staff)


async def test_staff_of_other_center_sees_not_found(world, make_appointment, principal_for, session):
    appointment = await make_appointment(world)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    outsider = await principal_for(world.other_staff_user)

    with pytest.raises(NotFoundError):
        await machine.transition(appointment.appointment_id, S.CONFIRMED, outsider)


async def test_missing_update_status_permission_is_forbidden(
    world, make_appointment, principal_for, session
):
    appointment = await make_appointment(world)
    machine = AppointmentStateMachine(session, NotificationDispatcher())

    for user in (world.limited_staff_user, world.citizen):
        principal = await principal_for(user)
        with pytest.raises(ForbiddenError):
            await machine.transition(appointment.appointment_id, S.CONFIRMED, principal)


async def test_admin_may_transition_any_center(world, make_appointment, principal_for, session):
    appointment = await make_appointment(world, center=world.other_center)
    machine = AppointmentStateMachine(session, NotificationDispatcher())
    admin = await principal_for(world.admin)

    result = await machine.transition(appointment.appointment_id, S.CONFIRMED, admin)
    assert result.appointment.status == S.CONFIRMED


async def test_concurrent_conflicting_transitions_have_one_winner(
    world, make_appointment, principal_for, db_manager
):
    """Two writers race from pending; exactly one commits."""
    appointment = await make_appointment(world)
    staff = await principal_for(world.staff_user)

    async def attempt(target, reason=None):
        async with db_manager.session() as db:
            machine = AppointmentStateMachine(db, NotificationDispatcher())
            return await machine.transition(
                appointment.appointment_id, target, staff, reason=reason
            )

    outcomes = await asyncio.gather(
        attempt(S.CONFIRMED),
        attempt(S.CANCELLED, reason="Duplicate booking"),
        return_exceptions=True,
    )

    winners = [o for o in outcomes if not isinstance(o, BaseException)]
    losers = [o for o in outcomes if isinstance(o, BaseException)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert isinstance(losers[0], IllegalTransitionError)

    async with db_manager.session() as db:
        stored = await db.get(Appointment, appointment.appointment_id)
        assert stored.status == winners[0].appointment.status
        history = (
            await db.execute(
                select(StatusHistoryEntry).where(
                    StatusHistoryEntry.appointment_id == appointment.appointment_id
                )
            )
        ).scalars().all()
        assert len(history) == 1
