"""HTTP surface: envelopes, role gating, projections and the booking scenario end to end."""


def book(api, seed, headers, hour="10:00"):
    return api.post(
        "/appointments",
        json={
            "mechanicId": seed.mechanic.id,
            "vehicleId": seed.vehicle.id,
            "scheduleId": seed.schedule.id,
            "hour": hour,
            "date": seed.booking_date.isoformat(),
            "description": "Engine light is on",
        },
        headers=headers,
    )


def available_hours(api, seed, headers):
    response = api.get(f"/schedules/{seed.schedule.id}", headers=headers)
    assert response.status_code == 200
    return response.json()["data"]["availableHours"]


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}


def test_requests_without_token_are_unauthorized(api):
    response = api.get("/appointments")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Missing bearer token", "data": None}


def test_garbage_token_is_unauthorized(api):
    response = api.get("/appointments", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_booking_rejection_scenario(api, seed, auth_headers):
    client_headers = auth_headers(seed.client)
    mechanic_headers = auth_headers(seed.mechanic)

    created = book(api, seed, client_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    appointment = body["data"]
    assert appointment["status"] == "pending"
    assert appointment["hour"] == "10:00"
    assert appointment["date"] == "2026-01-22"
    assert appointment["client"] == {"id": seed.client.id, "name": "Carla Client"}
    assert appointment["mechanic"]["id"] == seed.mechanic.id
    assert appointment["vehicle"]["licensePlate"] == "ABC123"
    assert "10:00" not in available_hours(api, seed, client_headers)

    mechanic_inbox = api.get("/notifications", headers=mechanic_headers).json()["data"]
    assert [n["type"] for n in mechanic_inbox] == ["appointment_created"]
    assert mechanic_inbox[0]["metadata"] == {"appointmentId": appointment["id"]}

    rejected = api.patch(
        f"/appointments/{appointment['id']}",
        json={"status": "rejected", "rejectionReason": "not available"},
        headers=mechanic_headers,
    )
    assert rejected.status_code == 200
    assert rejected.json()["data"]["status"] == "rejected"
    assert rejected.json()["data"]["rejectionReason"] == "not available"
    assert "10:00" in available_hours(api, seed, client_headers)

    client_inbox = api.get("/notifications", headers=client_headers).json()["data"]
    assert client_inbox[0]["type"] == "appointment_rejected"
    assert "not available" in client_inbox[0]["message"]


def test_rejecting_without_reason_fails(api, seed, auth_headers):
    appointment_id = book(api, seed, auth_headers(seed.client)).json()["data"]["id"]

    response = api.patch(
        f"/appointments/{appointment_id}",
        json={"status": "rejected"},
        headers=auth_headers(seed.mechanic),
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert "Rejection reason" in response.json()["message"]


def test_accept_then_modify_conflicts(api, seed, auth_headers):
    mechanic_headers = auth_headers(seed.mechanic)
    appointment_id = book(api, seed, auth_headers(seed.client)).json()["data"]["id"]

    accepted = api.patch(f"/appointments/{appointment_id}/accept", headers=mechanic_headers)
    again = api.patch(
        f"/appointments/{appointment_id}/reject",
        json={"rejectionReason": "too late"},
        headers=mechanic_headers,
    )

    assert accepted.json()["data"]["status"] == "accepted"
    assert again.status_code == 409
    assert again.json()["message"] == "Only pending appointments can be modified"


def test_only_clients_can_book(api, seed, auth_headers):
    response = book(api, seed, auth_headers(seed.mechanic))

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_unavailable_hour_returns_validation_error(api, seed, auth_headers):
    response = book(api, seed, auth_headers(seed.client), hour="16:00")

    assert response.status_code == 400
    assert response.json()["message"] == "The selected hour is not available"


def test_malformed_hour_is_unprocessable(api, seed, auth_headers):
    response = book(api, seed, auth_headers(seed.client), hour="ten o'clock")

    assert response.status_code == 422
    assert response.json()["success"] is False


def test_list_projection_depends_on_role(api, seed, auth_headers):
    book(api, seed, auth_headers(seed.client))

    as_client = api.get("/appointments", headers=auth_headers(seed.client)).json()["data"]
    as_mechanic = api.get("/appointments", headers=auth_headers(seed.mechanic)).json()["data"]

    assert "client" not in as_client[0]
    assert as_client[0]["mechanic"] == {"id": seed.mechanic.id, "name": "Mario Mechanic"}
    assert "mechanic" not in as_mechanic[0]
    assert as_mechanic[0]["client"]["email"] == "carla@example.com"


def test_list_filters_by_status(api, seed, auth_headers):
    client_headers = auth_headers(seed.client)
    first = book(api, seed, client_headers, hour="09:00").json()["data"]["id"]
    book(api, seed, client_headers, hour="11:00")
    api.patch(f"/appointments/{first}/accept", headers=auth_headers(seed.mechanic))

    everything = api.get("/appointments", headers=client_headers).json()["data"]
    pending = api.get("/appointments", params={"status": "pending"}, headers=client_headers).json()["data"]

    assert [a["status"] for a in everything] == ["accepted", "pending"]
    assert [a["hour"] for a in pending] == ["11:00"]


def test_other_client_cannot_read_or_cancel(api, seed, auth_headers):
    appointment_id = book(api, seed, auth_headers(seed.client)).json()["data"]["id"]
    intruder = auth_headers(seed.other_client)

    assert api.get(f"/appointments/{appointment_id}", headers=intruder).status_code == 403
    assert api.delete(f"/appointments/{appointment_id}", headers=intruder).status_code == 403
    assert api.get("/appointments", headers=intruder).json()["data"] == []


def test_cancel_returns_empty_payload_and_frees_slot(api, seed, auth_headers):
    client_headers = auth_headers(seed.client)
    appointment_id = book(api, seed, client_headers).json()["data"]["id"]

    response = api.delete(f"/appointments/{appointment_id}", headers=client_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Appointment cancelled successfully", "data": None}
    assert "10:00" in available_hours(api, seed, client_headers)
    assert api.get(f"/appointments/{appointment_id}", headers=client_headers).status_code == 404


def test_missing_appointment_is_not_found(api, seed, auth_headers):
    response = api.get("/appointments/9999", headers=auth_headers(seed.admin))

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Appointment not found", "data": None}


def test_mechanic_manages_own_schedule(api, seed, auth_headers):
    mechanic_headers = auth_headers(seed.mechanic)

    created = api.post("/schedules", json={"date": "2026-02-02", "hours": ["9:00", "13:00"]}, headers=mechanic_headers)
    schedule_id = created.json()["data"]["id"]
    added = api.post(f"/schedules/{schedule_id}/hours", json={"hour": "15:00"}, headers=mechanic_headers)
    removed = api.delete(f"/schedules/{schedule_id}/hours/09:00", headers=mechanic_headers)
    foreign = api.post(f"/schedules/{schedule_id}/hours", json={"hour": "16:00"}, headers=auth_headers(seed.other_mechanic))

    assert created.status_code == 201
    assert created.json()["data"]["availableHours"] == ["09:00", "13:00"]
    assert added.json()["data"]["availableHours"] == ["09:00", "13:00", "15:00"]
    assert removed.json()["data"]["availableHours"] == ["13:00", "15:00"]
    assert foreign.status_code == 403


def test_vehicle_registration_and_ownership(api, seed, auth_headers):
    client_headers = auth_headers(seed.client)

    created = api.post(
        "/vehicles",
        json={"licensePlate": "def 456", "brand": "Honda", "model": "Civic", "year": 2020},
        headers=client_headers,
    )
    duplicate = api.post(
        "/vehicles",
        json={"licensePlate": "DEF456", "brand": "Honda", "model": "Civic"},
        headers=auth_headers(seed.other_client),
    )
    mine = api.get("/vehicles", headers=client_headers).json()["data"]

    assert created.status_code == 201
    assert created.json()["data"]["licensePlate"] == "DEF456"
    assert duplicate.status_code == 400
    assert {v["licensePlate"] for v in mine} == {"ABC123", "DEF456"}
    assert api.get(f"/vehicles/{seed.other_vehicle.id}", headers=client_headers).status_code == 403


def test_users_listing_and_admin_creation(api, seed, auth_headers, outbox):
    mechanics = api.get("/users", params={"role": "mechanic"}, headers=auth_headers(seed.client)).json()["data"]
    me = api.get("/users/me", headers=auth_headers(seed.client)).json()["data"]
    created = api.post(
        "/users",
        json={"name": "Nico New", "email": "Nico@Example.com", "password": seed.password, "role": "mechanic"},
        headers=auth_headers(seed.admin),
    )
    duplicate = api.post(
        "/users",
        json={"name": "Nico Again", "email": "nico@example.com", "password": seed.password},
        headers=auth_headers(seed.admin),
    )
    forbidden = api.post(
        "/users",
        json={"name": "Sneaky", "email": "sneaky@example.com", "password": seed.password, "role": "admin"},
        headers=auth_headers(seed.client),
    )

    assert {m["email"] for m in mechanics} == {"mario@example.com", "marta@example.com"}
    assert me["role"] == "client"
    assert created.status_code == 201
    assert created.json()["data"]["email"] == "nico@example.com"
    assert [m.to for m in outbox.sent] == ["nico@example.com"]
    assert duplicate.status_code == 409
    assert forbidden.status_code == 403


def test_mark_notification_read(api, seed, auth_headers):
    mechanic_headers = auth_headers(seed.mechanic)
    book(api, seed, auth_headers(seed.client))
    notification_id = api.get("/notifications", headers=mechanic_headers).json()["data"][0]["id"]

    marked = api.patch(f"/notifications/{notification_id}/read", headers=mechanic_headers)
    unread = api.get("/notifications", params={"unreadOnly": "true"}, headers=mechanic_headers).json()["data"]

    assert marked.json()["data"]["isRead"] is True
    assert unread == []


def test_request_id_is_echoed_or_generated(api):
    echoed = api.get("/health", headers={"X-Request-ID": "trace-123"})
    generated = api.get("/health")

    assert echoed.headers["X-Request-ID"] == "trace-123"
    assert len(generated.headers["X-Request-ID"]) == 12
