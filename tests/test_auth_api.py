"""Auth and account routes: registration, login, e-mailed links and user management."""

from app.main import app


def login(api, email, password):
    return api.post("/auth/login", json={"email": email, "password": password})


def bearer(response) -> dict[str, str]:
    return {"Authorization": f"Bearer {response.json()['data']['accessToken']}"}


def test_auth_routes_are_published():
    paths = app.openapi()["paths"]

    assert "/auth/register" in paths
    assert "/auth/login" in paths
    assert "/users/{user_id}/role" in paths


def test_register_confirm_and_login(api, outbox):
    registered = api.post(
        "/auth/register",
        json={"name": "Nina New", "email": "Nina@Example.com", "password": "Str0ng!pass"},
    )
    unconfirmed = login(api, "nina@example.com", "Str0ng!pass")
    confirmed = api.get(
        "/auth/confirm-email",
        params={"token": outbox.last_token("nina@example.com")},
        follow_redirects=False,
    )
    logged_in = login(api, "nina@example.com", "Str0ng!pass")
    me = api.get("/users/me", headers=bearer(logged_in))

    assert registered.status_code == 201
    assert registered.json() == {"success": True, "message": "Confirmation email sent to nina@example.com", "data": None}
    assert unconfirmed.status_code == 403
    assert unconfirmed.json()["message"] == "Email not confirmed"
    assert confirmed.status_code == 302
    assert confirmed.headers["location"].endswith("?emailConfirmed=true")
    assert logged_in.status_code == 200
    assert logged_in.json()["data"]["user"]["email"] == "nina@example.com"
    assert me.json()["data"]["name"] == "Nina New"


def test_register_rejects_weak_password(api, outbox):
    response = api.post("/auth/register", json={"name": "Weak", "email": "weak@example.com", "password": "password"})

    assert response.status_code == 422
    assert "uppercase" in response.json()["message"]
    assert outbox.sent == []


def test_wrong_password_is_unauthorized(api, seed):
    response = login(api, "carla@example.com", "Wrong123!")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials", "data": None}


def test_lockout_survives_requests_until_unlocked(api, seed, outbox):
    attempts = [login(api, "carla@example.com", "Wrong123!") for _ in range(5)]
    locked = login(api, "carla@example.com", seed.password)
    requested = api.post("/auth/request-unlock", json={"email": "carla@example.com"})
    unlocked = api.get("/auth/unlock-account", params={"token": outbox.last_token("carla@example.com")})
    after = login(api, "carla@example.com", seed.password)

    assert [r.status_code for r in attempts] == [401, 401, 401, 401, 403]
    assert attempts[-1].json()["message"] == "Account has been locked due to failed attempts"
    assert locked.status_code == 403
    assert locked.json()["message"] == "Account is locked"
    assert requested.status_code == 200
    assert unlocked.status_code == 200
    assert after.status_code == 200


def test_password_reset_link_is_single_use(api, seed, outbox):
    api.post("/auth/request-password-reset", json={"email": "carla@example.com"})
    token = outbox.last_token("carla@example.com")

    reset = api.post("/auth/reset-password", params={"token": token}, json={"newPassword": "N3w!password"})
    reused = api.post("/auth/reset-password", params={"token": token}, json={"newPassword": "An0ther!pass"})

    assert reset.status_code == 200
    assert reused.status_code == 401
    assert reused.json()["message"] == "Token has already been used"
    assert login(api, "carla@example.com", "N3w!password").status_code == 200


def test_profile_and_password_updates(api, seed, auth_headers):
    headers = auth_headers(seed.client)

    renamed = api.patch("/users/me", json={"name": "Carla Cliente"}, headers=headers)
    unchanged = api.patch("/users/me", json={"name": "Carla Cliente"}, headers=headers)
    wrong = api.patch(
        "/users/me/password",
        json={"currentPassword": "Wrong123!", "newPassword": "N3w!password"},
        headers=headers,
    )
    changed = api.patch(
        "/users/me/password",
        json={"currentPassword": seed.password, "newPassword": "N3w!password"},
        headers=headers,
    )

    assert renamed.json()["data"]["name"] == "Carla Cliente"
    assert unchanged.status_code == 400
    assert wrong.status_code == 403
    assert changed.status_code == 200
    assert login(api, "carla@example.com", "N3w!password").status_code == 200


def test_email_change_can_be_reverted(api, seed, auth_headers, outbox):
    requested = api.patch(
        "/users/me/email",
        json={"password": seed.password, "newEmail": "carla.new@example.com"},
        headers=auth_headers(seed.client),
    )
    confirmed = api.get("/auth/confirm-email-update", params={"token": outbox.last_token("carla.new@example.com")})
    reverted = api.get("/auth/revert-email", params={"token": outbox.last_token("carla@example.com")})
    reset = api.post(
        "/auth/reset-password-after-revert",
        params={"token": reverted.json()["data"]["resetToken"]},
        json={"newPassword": "Reg4ined!access"},
    )

    assert requested.json()["message"] == "Confirmation email sent to carla.new@example.com"
    assert confirmed.status_code == 200
    assert reverted.status_code == 200
    assert reset.status_code == 200
    assert login(api, "carla@example.com", "Reg4ined!access").status_code == 200


def test_admin_manages_roles_and_accounts(api, seed, auth_headers):
    admin = auth_headers(seed.admin)

    promoted = api.patch(f"/users/{seed.other_client.id}/role", json={"role": "mechanic"}, headers=admin)
    own_role = api.patch(f"/users/{seed.admin.id}/role", json={"role": "client"}, headers=admin)
    not_admin = api.patch(f"/users/{seed.other_client.id}/role", json={"role": "admin"}, headers=auth_headers(seed.client))
    deleted = api.delete(f"/users/{seed.other_mechanic.id}", headers=admin)
    missing = api.delete(f"/users/{seed.other_mechanic.id}", headers=admin)

    assert promoted.json()["data"]["role"] == "mechanic"
    assert own_role.status_code == 403
    assert not_admin.status_code == 403
    assert deleted.status_code == 200
    assert missing.status_code == 404


def test_users_with_appointments_cannot_be_deleted(api, seed, auth_headers):
    api.post(
        "/appointments",
        json={
            "mechanicId": seed.mechanic.id,
            "vehicleId": seed.vehicle.id,
            "scheduleId": seed.schedule.id,
            "hour": "10:00",
            "date": seed.booking_date.isoformat(),
        },
        headers=auth_headers(seed.client),
    )

    response = api.delete(f"/users/{seed.client.id}", headers=auth_headers(seed.admin))

    assert response.status_code == 409
    assert response.json()["message"] == "Users with appointments cannot be deleted"
