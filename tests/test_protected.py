"""Tests for verified-email feature gates."""

from __future__ import annotations

import pytest

from conftest import auth_headers, create_user
from storage import get_storage

FEATURES = [
    ("resume-builder", "resume_builder"),
    ("resume-analyzer", "resume_analyzer"),
    ("templates", "templates"),
    ("cover-letter", "cover_letter"),
    ("profile", "profile"),
]


@pytest.mark.parametrize("path, feature", FEATURES)
def test_verified_user_is_granted_and_tracked(client, app, path, feature):
    user_id = create_user(app)

    response = client.get(f"/api/protected/{path}", headers=auth_headers(app, user_id))

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["feature"] == feature
    assert payload["user"]["id"] == user_id
    with app.app_context():
        events = get_storage().analytics.list(user_id=user_id)
    assert [(e.feature_name, e.action) for e in events] == [(feature, "access")]


def test_unverified_user_is_forbidden(client, app):
    user_id = create_user(app, verified=False)

    response = client.get("/api/protected/resume-builder", headers=auth_headers(app, user_id))

    assert response.status_code == 403
    payload = response.get_json()
    assert payload["requiresVerification"] is True
    assert payload["user"] == {"email": "jane@example.com", "email_verified": False}


def test_missing_token_is_unauthorized(client):
    response = client.get("/api/protected/templates")
    assert response.status_code == 401
    assert response.get_json()["requiresAuth"] is True


def test_deleted_user_token_is_rejected(client, app):
    user_id = create_user(app)
    headers = auth_headers(app, user_id)
    with app.app_context():
        users = get_storage().users
        users.delete(users.get(user_id))

    response = client.get("/api/protected/templates", headers=headers)

    assert response.status_code == 401
