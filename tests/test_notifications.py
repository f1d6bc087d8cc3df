# tests/test_notifications.py
import httpx
import pytest

from app.db.models import AppointmentStatus, Notification, NotificationType
from app.services.v1 import (
    BookingEvent,
    NotificationDispatcher,
    NotificationPayload,
    NotificationService,
    TransitionEvent,
    WebhookChannel,
)
from common.api_error import NotFoundError

from .conftest import TOMORROW, RecordingChannel

pytestmark = pytest.mark.anyio


def _transition(world, appointment, to_status, reason=None):
    return TransitionEvent(
        appointment_id=appointment.appointment_id,
        citizen_id=world.citizen.user_id,
        from_status=AppointmentStatus.PENDING,
        to_status=to_status,
        actor_id=world.staff_user.user_id,
        reason=reason,
    )


@pytest.mark.parametrize(
    "to_status,title,message",
    [
        (AppointmentStatus.CONFIRMED, "Appointment confirmed", "Your appointment has been confirmed."),
        (AppointmentStatus.IN_PROGRESS, "Appointment in progress", "Your appointment is now in progress."),
        (AppointmentStatus.COMPLETED, "Appointment completed", "Your appointment has been completed."),
        (AppointmentStatus.CANCELLED, "Appointment cancelled", "Appointment cancelled: No show"),
    ],
)
async def test_transition_notification_text(to_status, title, message, world, make_appointment, session):
    appointment = await make_appointment(world)
    created = await NotificationDispatcher().emit(
        session, _transition(world, appointment, to_status, reason="No show")
    )

    [notification] = created
    assert notification.title == title
    assert notification.message == message
    assert notification.type == NotificationType.APPOINTMENT
    assert notification.is_read is False


async def test_booking_notifies_citizen_and_active_center_staff(world, make_appointment, session):
    appointment = await make_appointment(world)
    created = await NotificationDispatcher().emit(
        session,
        BookingEvent(
            appointment_id=appointment.appointment_id,
            citizen_id=world.citizen.user_id,
            center_id=world.center.center_id,
            service_name="Income Certificate",
            appointment_date=TOMORROW,
            time_slot="10:00 AM",
            reference_code=appointment.reference_code,
        ),
    )

    recipients = {n.recipient_id for n in created}
    assert recipients == {
        world.citizen.user_id,
        world.staff_user.user_id,
        world.limited_staff_user.user_id,
    }
    assert world.other_staff_user.user_id not in recipients


async def test_failing_channel_does_not_stop_delivery(world, make_appointment, session):
    appointment = await make_appointment(world)
    failing = RecordingChannel(fail=True)
    healthy = RecordingChannel()
    dispatcher = NotificationDispatcher(channels=[failing, healthy])

    created = await dispatcher.emit(
        session, _transition(world, appointment, AppointmentStatus.CONFIRMED)
    )
    await session.commit()

    payloads = [NotificationPayload.from_notification(n) for n in created]
    delivered = await dispatcher.deliver_external(payloads)

    assert delivered == 1
    assert dispatcher.delivery_failures == 1
    assert [p.notification_id for p in healthy.sent] == [created[0].notification_id]
    assert await session.get(Notification, created[0].notification_id) is not None


async def test_webhook_channel_posts_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(202)

    channel = WebhookChannel("https://gateway.test/notify", transport=httpx.MockTransport(handler))
    payload = NotificationPayload(
        notification_id="n-1",
        recipient_id="u-1",
        title="Appointment confirmed",
        message="Your appointment has been confirmed.",
        type="appointment",
        appointment_id="a-1",
    )
    await channel.send(payload)

    [request] = received
    assert request.method == "POST"
    assert b'"recipientId":"u-1"' in request.content.replace(b" ", b"")


async def test_webhook_error_is_swallowed_by_dispatcher():
    channel = WebhookChannel(
        "https://gateway.test/notify",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    dispatcher = NotificationDispatcher(channels=[channel])
    payload = NotificationPayload(
        notification_id="n-1", recipient_id="u-1", title="t", message="m", type="appointment"
    )

    assert await dispatcher.deliver_external([payload]) == 0
    assert dispatcher.delivery_failures == 1


async def test_inbox_lists_newest_first_with_unread_count(world, make_appointment, session):
    appointment = await make_appointment(world)
    dispatcher = NotificationDispatcher()
    for status in (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_PROGRESS):
        await dispatcher.emit(session, _transition(world, appointment, status))
    await session.commit()

    service = NotificationService(session)
    items, unread = await service.list_for_recipient(world.citizen.user_id)
    assert len(items) == 2
    assert unread == 2
    assert items[0].created_at >= items[1].created_at

    other_items, other_unread = await service.list_for_recipient(world.other_citizen.user_id)
    assert other_items == []
    assert other_unread == 0


async def test_inbox_is_capped_at_fifty(world, session):
    session.add_all(
        Notification(recipient_id=world.citizen.user_id, title=f"n{i}", message="m")
        for i in range(55)
    )
    await session.commit()

    items, unread = await NotificationService(session).list_for_recipient(world.citizen.user_id)
    assert len(items) == 50
    assert unread == 55


async def test_mark_read_and_mark_all_read(world, session):
    session.add_all(
        Notification(recipient_id=world.citizen.user_id, title=f"n{i}", message="m")
        for i in range(3)
    )
    await session.commit()
    service = NotificationService(session)
    items, _ = await service.list_for_recipient(world.citizen.user_id)

    marked = await service.mark_read(world.citizen.user_id, items[0].notification_id)
    assert marked.is_read is True
    assert await service.unread_count(world.citizen.user_id) == 2

    assert await service.mark_all_read(world.citizen.user_id) == 2
    assert await service.unread_count(world.citizen.user_id) == 0


async def test_mark_read_of_someone_elses_notification_is_not_found(world, session):
    notification = Notification(recipient_id=world.citizen.user_id, title="t", message="m")
    session.add(notification)
    await session.commit()

    with pytest.raises(NotFoundError):
        await NotificationService(session).mark_read(
            world.other_citizen.user_id, notification.notification_id
        )
