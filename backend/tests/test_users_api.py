def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_me_returns_current_user(client, registered):
    response = client.get("/users/me", headers=_bearer(registered["accessToken"]))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "a@b.com"
    assert "password" not in data and "password_hash" not in data


def test_me_requires_token(client):
    response = client.get("/users/me")
    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_MISSING"


def test_change_password_invalidates_reset_tokens(client, registered, notifier):
    client.post("/auth/forgot-password", json={"email": "a@b.com"})
    pending = notifier.last_token

    response = client.patch(
        "/users/me/password",
        headers=_bearer(registered["accessToken"]),
        json={"currentPassword": "secret1", "newPassword": "changed1"},
    )
    assert response.status_code == 200

    stale = client.post("/auth/reset-password", json={"token": pending, "newPassword": "hijack1"})
    assert stale.status_code == 400
    assert client.post("/auth/signin", json={"email": "a@b.com", "password": "changed1"}).status_code == 200


def test_change_password_checks_current_password(client, registered):
    response = client.patch(
        "/users/me/password",
        headers=_bearer(registered["accessToken"]),
        json={"currentPassword": "wrong-one", "newPassword": "changed1"},
    )
    assert response.status_code == 401


def test_deleted_account_cannot_authenticate(client, registered):
    headers = _bearer(registered["accessToken"])
    assert client.delete("/users/me", headers=headers).status_code == 200

    assert client.post("/auth/signin", json={"email": "a@b.com", "password": "secret1"}).status_code == 401

    verify = client.get("/auth/verify-token", headers=headers)
    assert verify.status_code == 401
    assert verify.json()["code"] == "USER_NOT_FOUND"

    refresh = client.post("/auth/refresh-token", json={"refreshToken": registered["refreshToken"]})
    assert refresh.status_code == 401


def test_deleted_account_gets_no_reset_link(client, registered, notifier):
    client.delete("/users/me", headers=_bearer(registered["accessToken"]))
    response = client.post("/auth/forgot-password", json={"email": "a@b.com"})
    assert response.status_code == 200
    assert notifier.sent == []


def test_deleted_email_stays_reserved(client, registered, signup_payload):
    client.delete("/users/me", headers=_bearer(registered["accessToken"]))
    assert client.post("/auth/signup", json=signup_payload).status_code == 409
