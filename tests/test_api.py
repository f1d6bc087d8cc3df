# tests/test_api.py
from datetime import timedelta

import pytest

from app.db.models import AppointmentStatus

from .conftest import TODAY, TOMORROW

pytestmark = pytest.mark.anyio


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def test_citizen_books_appointment(client, world, token_for, channel):
    response = await client.post(
        "/appointments",
        headers=auth(token_for(world.citizen)),
        json={
            "serviceId": world.service.service_id,
            "centerId": world.center.center_id,
            "appointmentDate": TOMORROW.isoformat(),
            "timeSlot": "10:00 AM",
            "selectedDocuments": [
                {"documentName": "Aadhaar Card", "isAlternative": True, "alternativeName": "Voter ID"},
                {"documentName": "Ration Card"},
            ],
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["completedAt"] is None
    assert [d["displayName"] for d in body["selectedDocuments"]] == ["Voter ID", "Ration Card"]
    assert len(body["referenceCode"]) == 10
    assert response.headers["X-Request-ID"]

    # Citizen confirmation plus two active staff at the center
    assert len(channel.sent) == 3


async def test_booking_rejects_unaccepted_document(client, world, token_for):
    response = await client.post(
        "/appointments",
        headers=auth(token_for(world.citizen)),
        json={
            "serviceId": world.service.service_id,
            "centerId": world.center.center_id,
            "appointmentDate": TOMORROW.isoformat(),
            "timeSlot": "10:00 AM",
            "selectedDocuments": [{"documentName": "Library Card"}],
        },
    )
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_booking_rejects_free_form_time_slot(client, world, token_for):
    response = await client.post(
        "/appointments",
        headers=auth(token_for(world.citizen)),
        json={
            "serviceId": world.service.service_id,
            "centerId": world.center.center_id,
            "appointmentDate": TOMORROW.isoformat(),
            "timeSlot": "after lunch",
        },
    )
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_list_orders_same_day_slots_by_clock_time(client, world, token_for, make_appointment):
    for slot in ("02:00 PM", "12:00 PM", "10:30 AM"):
        await make_appointment(world, appointment_date=TOMORROW, time_slot=slot)

    response = await client.get(
        "/appointments",
        headers=auth(token_for(world.staff_user)),
        params={"date": TOMORROW.isoformat()},
    )

    assert response.status_code == 200
    assert [a["timeSlot"] for a in response.json()] == ["10:30 AM", "12:00 PM", "02:00 PM"]


async def test_missing_token_is_401(client):
    response = await client.get("/notifications")
    assert response.status_code == 401
    assert response.json()["error"] == "UNAUTHORIZED"


async def test_expired_token_is_401_with_expiry_message(client, world, token_for):
    token = token_for(world.staff_user, expires_delta=timedelta(seconds=-1))
    response = await client.get("/appointments", headers=auth(token))
    assert response.status_code == 401
    assert response.json()["message"] == "Token expired."


async def test_status_update_flow(client, world, token_for, make_appointment):
    appointment = await make_appointment(world)
    headers = auth(token_for(world.staff_user))
    url = f"/appointments/{appointment.appointment_id}/status"

    response = await client.put(url, headers=headers, json={"status": "confirmed"})
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    response = await client.put(url, headers=headers, json={"status": "completed"})
    assert response.status_code == 409
    assert response.json()["error"] == "ILLEGAL_TRANSITION"

    response = await client.put(url, headers=headers, json={"status": "cancelled", "reason": " "})
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"

    response = await client.put(url, headers=headers, json={"status": "in_progress"})
    response = await client.put(url, headers=headers, json={"status": "completed"})
    body = response.json()
    assert body["status"] == "completed"
    assert body["completedAt"] is not None
    assert len(body["statusHistory"]) == 3


async def test_status_update_error_codes(client, world, token_for, make_appointment):
    appointment = await make_appointment(world)
    url = f"/appointments/{appointment.appointment_id}/status"

    response = await client.put(
        "/appointments/unknown/status",
        headers=auth(token_for(world.staff_user)),
        json={"status": "confirmed"},
    )
    assert response.status_code == 404

    response = await client.put(
        url, headers=auth(token_for(world.limited_staff_user)), json={"status": "confirmed"}
    )
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"

    response = await client.put(
        url, headers=auth(token_for(world.other_staff_user)), json={"status": "confirmed"}
    )
    assert response.status_code == 404

    response = await client.put(
        url, headers=auth(token_for(world.staff_user)), json={"status": "archived"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_citizen_sees_only_own_appointments(client, world, token_for, make_appointment):
    appointment = await make_appointment(world)
    url = f"/appointments/{appointment.appointment_id}"

    response = await client.get(url, headers=auth(token_for(world.citizen)))
    assert response.status_code == 200
    assert response.json()["appointmentId"] == appointment.appointment_id

    response = await client.get(url, headers=auth(token_for(world.other_citizen)))
    assert response.status_code == 404


async def test_staff_lists_center_appointments(client, world, token_for, make_appointment):
    await make_appointment(world, status=AppointmentStatus.CONFIRMED, appointment_date=TODAY)
    await make_appointment(world, status=AppointmentStatus.PENDING, appointment_date=TODAY)
    await make_appointment(world, center=world.other_center)

    response = await client.get(
        "/appointments", headers=auth(token_for(world.staff_user)), params={"status": "confirmed"}
    )
    assert response.status_code == 200
    assert [a["status"] for a in response.json()] == ["confirmed"]

    response = await client.get("/appointments", headers=auth(token_for(world.citizen)))
    assert response.status_code == 403


async def test_comments_by_citizen_and_staff(client, world, token_for, make_appointment):
    appointment = await make_appointment(world)
    url = f"/appointments/{appointment.appointment_id}/comments"

    response = await client.post(
        url, headers=auth(token_for(world.citizen)), json={"comment": "Can I come earlier?"}
    )
    assert response.status_code == 201
    assert response.json()["authorType"] == "user"

    response = await client.post(
        url, headers=auth(token_for(world.staff_user)), json={"comment": "Yes, at 9:30."}
    )
    assert response.json()["authorType"] == "staff"

    detail = await client.get(
        f"/appointments/{appointment.appointment_id}", headers=auth(token_for(world.citizen))
    )
    assert [c["content"] for c in detail.json()["comments"]] == [
        "Can I come earlier?",
        "Yes, at 9:30.",
    ]


async def test_validation_and_missing_documents_endpoints(client, world, token_for, make_appointment):
    appointment = await make_appointment(world)
    headers = auth(token_for(world.staff_user))
    base = f"/appointments/{appointment.appointment_id}"

    response = await client.put(
        f"{base}/validation",
        headers=headers,
        json={"isValidated": False, "missingDocuments": ["Ration Card"], "staffNotes": "Torn"},
    )
    assert response.status_code == 200
    assert response.json()["missingDocuments"] == ["Ration Card"]
    assert response.json()["validatedBy"] == world.staff_user.user_id

    response = await client.put(
        f"{base}/validation",
        headers=headers,
        json={"isValidated": False, "missingDocuments": ["Birth Certificate"]},
    )
    assert response.status_code == 400

    response = await client.post(
        f"{base}/notify-missing-documents",
        headers=headers,
        json={"missingDocuments": ["Ration Card"], "alternatives": "Electricity bill"},
    )
    assert response.status_code == 201
    assert response.json()["recipientId"] == world.citizen.user_id

    response = await client.post(
        f"{base}/notify-missing-documents", headers=headers, json={"missingDocuments": []}
    )
    assert response.status_code == 400


async def test_notification_inbox(client, world, token_for, make_appointment):
    appointment = await make_appointment(world)
    await client.put(
        f"/appointments/{appointment.appointment_id}/status",
        headers=auth(token_for(world.staff_user)),
        json={"status": "confirmed"},
    )
    headers = auth(token_for(world.citizen))

    response = await client.get("/notifications", headers=headers)
    body = response.json()
    assert body["unreadCount"] == 1
    [item] = body["items"]
    assert item["title"] == "Appointment confirmed"

    response = await client.put(f"/notifications/{item['notificationId']}/read", headers=headers)
    assert response.json()["isRead"] is True

    response = await client.put(
        f"/notifications/{item['notificationId']}/read",
        headers=auth(token_for(world.other_citizen)),
    )
    assert response.status_code == 404

    response = await client.post("/notifications/mark-read", headers=headers)
    assert response.json() == {"updated": 0}


async def test_staff_dashboard(client, world, token_for, make_appointment):
    await make_appointment(world, status=AppointmentStatus.CONFIRMED, appointment_date=TODAY)
    response = await client.get(
        "/staff/dashboard", headers=auth(token_for(world.staff_user)), params={"period": "week"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["counts"]["confirmed"] == 1
    assert body["counts"]["total"] == 1
    assert body["todayRevenue"] == 0.0
    assert "Server-Timing" in response.headers

    response = await client.get(
        "/staff/dashboard", headers=auth(token_for(world.staff_user)), params={"period": "year"}
    )
    assert response.status_code == 400


async def test_maintenance_mode_blocks_all_but_admin_and_health(client, world, token_for):
    admin_headers = auth(token_for(world.admin))

    response = await client.put(
        "/admin/settings",
        headers=admin_headers,
        json={"maintenanceMode": True, "estimatedDowntime": "1 hour"},
    )
    assert response.status_code == 200
    assert response.json()["maintenanceMode"] is True

    response = await client.get("/notifications", headers=auth(token_for(world.citizen)))
    assert response.status_code == 503
    assert response.json()["error"] == "MAINTENANCE_MODE"
    assert response.json()["estimatedDowntime"] == "1 hour"

    assert (await client.get("/health")).status_code == 200
    assert (await client.get("/admin/settings", headers=admin_headers)).status_code == 200

    await client.put("/admin/settings", headers=admin_headers, json={"maintenanceMode": False})
    response = await client.get("/notifications", headers=auth(token_for(world.citizen)))
    assert response.status_code == 200


async def test_admin_settings_reject_null_message(client, world, token_for):
    response = await client.put(
        "/admin/settings",
        headers=auth(token_for(world.admin)),
        json={"maintenanceMessage": None},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_admin_settings_require_admin(client, world, token_for):
    response = await client.get("/admin/settings", headers=auth(token_for(world.staff_user)))
    assert response.status_code == 403


async def test_health_reports_database(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["database"]["healthy"] is True
