"""Tests for reading and partially updating the signed-in user's profile."""

from __future__ import annotations

from conftest import auth_headers, create_user, load_user


def test_get_profile(client, app):
    user_id = create_user(app)
    response = client.get("/api/auth/profile", headers=auth_headers(app, user_id))

    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["email"] == "jane@example.com"
    assert "password_hash" not in user


def test_update_only_touches_supplied_fields(client, app):
    user_id = create_user(app)
    before = load_user(app, user_id)

    response = client.put(
        "/api/auth/profile", json={"name": "Jane Smith"}, headers=auth_headers(app, user_id)
    )

    assert response.status_code == 200
    after = load_user(app, user_id)
    assert after["name"] == "Jane Smith"
    assert after["email"] == before["email"]
    assert after["password_hash"] == before["password_hash"]
    assert after["role"] == before["role"]


def test_update_ignores_privileged_fields(client, app):
    user_id = create_user(app)

    response = client.put(
        "/api/auth/profile",
        json={"name": "Jane Smith", "role": "admin", "email_verified": False},
        headers=auth_headers(app, user_id),
    )

    assert response.status_code == 200
    stored = load_user(app, user_id)
    assert stored["role"] == "user"
    assert stored["email_verified"] is True


def test_update_validates_fields(client, app):
    user_id = create_user(app)
    create_user(app, "taken@example.com")
    headers = auth_headers(app, user_id)

    assert client.put("/api/auth/profile", json={"name": "J"}, headers=headers).status_code == 400
    assert client.put("/api/auth/profile", json={"email": "nope"}, headers=headers).status_code == 400
    assert (
        client.put("/api/auth/profile", json={"email": "TAKEN@example.com"}, headers=headers).status_code
        == 409
    )
    assert load_user(app, user_id)["email"] == "jane@example.com"


def test_password_change_allows_new_login(client, app):
    user_id = create_user(app)

    response = client.put(
        "/api/auth/profile", json={"password": "newsecret"}, headers=auth_headers(app, user_id)
    )
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "secret123"})
    new = client.post("/api/auth/login", json={"email": "jane@example.com", "password": "newsecret"})
    assert old.status_code == 401
    assert new.status_code == 200
