"""Tests for the admin blueprint."""

from __future__ import annotations

import pytest

from conftest import auth_headers, create_user, load_user
from services import analytics


@pytest.fixture()
def admin(app):
    admin_id = create_user(app, "admin@example.com", name="Admin", role="admin")
    return admin_id, auth_headers(app, admin_id)


def test_non_admin_is_forbidden(client, app):
    user_id = create_user(app)

    response = client.get("/api/admin/dashboard", headers=auth_headers(app, user_id))

    assert response.status_code == 403
    assert response.get_json()["detail"] == "Admin access required."
    assert client.get("/api/admin/dashboard").status_code == 401


def test_dashboard(client, app, admin):
    create_user(app, "one@example.com")
    create_user(app, "two@example.com", verified=False)

    response = client.get("/api/admin/dashboard", headers=admin[1])

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["userStats"] == {"totalUsers": 3, "activeUsers": 3, "newUsersToday": 3, "admins": 1}
    assert isinstance(payload["featureUsage"], list)
    assert isinstance(payload["dailyActiveUsers"], list)


def test_list_users_paginates(client, app, admin):
    for index in range(3):
        create_user(app, f"user{index}@example.com")

    response = client.get("/api/admin/users?page=2&limit=3", headers=admin[1])

    assert response.status_code == 200
    payload = response.get_json()
    assert len(payload["users"]) == 1
    assert payload["pagination"] == {"page": 2, "limit": 3, "total": 4, "totalPages": 2}
    assert all("password_hash" not in user for user in payload["users"])


def test_get_user(client, app, admin):
    user_id = create_user(app)

    response = client.get(f"/api/admin/users/{user_id}", headers=admin[1])
    assert response.status_code == 200
    assert response.get_json()["user"]["email"] == "jane@example.com"

    assert client.get("/api/admin/users/9999", headers=admin[1]).status_code == 404


def test_update_user(client, app, admin):
    user_id = create_user(app)

    response = client.put(
        f"/api/admin/users/{user_id}", json={"role": "admin", "is_active": False}, headers=admin[1]
    )

    assert response.status_code == 200
    stored = load_user(app, user_id)
    assert stored["role"] == "admin"
    assert stored["is_active"] is False
    assert stored["name"] == "Jane Doe"


@pytest.mark.parametrize(
    "payload",
    [{"role": "owner"}, {"is_active": "no"}, {"name": "J"}, {"email": "bad"}],
)
def test_update_user_validation(client, app, admin, payload):
    user_id = create_user(app)
    response = client.put(f"/api/admin/users/{user_id}", json=payload, headers=admin[1])
    assert response.status_code == 400


def test_admin_cannot_demote_self(client, app, admin):
    admin_id, headers = admin
    response = client.put(f"/api/admin/users/{admin_id}", json={"role": "user"}, headers=headers)
    assert response.status_code == 403
    assert load_user(app, admin_id)["role"] == "admin"


def test_admin_role_is_normalized_for_self_update(client, app, admin):
    admin_id, headers = admin
    response = client.put(f"/api/admin/users/{admin_id}", json={"role": " Admin "}, headers=headers)

    assert response.status_code == 200
    assert load_user(app, admin_id)["role"] == "admin"


def test_deactivated_user_loses_access(client, app, admin):
    user_id = create_user(app)
    headers = auth_headers(app, user_id)
    client.put(f"/api/admin/users/{user_id}", json={"is_active": False}, headers=admin[1])

    assert client.get("/api/auth/profile", headers=headers).status_code == 401


def test_delete_user(client, app, admin):
    admin_id, headers = admin
    user_id = create_user(app)

    assert client.delete(f"/api/admin/users/{admin_id}", headers=headers).status_code == 400
    assert client.delete(f"/api/admin/users/{user_id}", headers=headers).status_code == 200
    assert client.get(f"/api/admin/users/{user_id}", headers=headers).status_code == 404
    assert load_user(app, user_id) is None


def test_export_user_data(client, app, admin):
    user_id = create_user(app)
    client.get("/api/protected/templates", headers=auth_headers(app, user_id))

    response = client.get(f"/api/admin/users/{user_id}/export", headers=admin[1])

    assert response.status_code == 200
    assert response.headers["Content-Disposition"] == f'attachment; filename="user_{user_id}_data.json"'
    payload = response.get_json()
    assert payload["user"]["id"] == user_id
    assert [event["feature_name"] for event in payload["analytics"]] == ["templates"]


def test_analytics_endpoints(client, app, admin):
    user_id = create_user(app)
    user_headers = auth_headers(app, user_id)
    client.get("/api/protected/templates", headers=user_headers)
    client.get("/api/protected/resume-builder", headers=user_headers)
    with app.app_context():
        analytics.track_event("resume_builder", "generate_pdf", user_id=user_id, metadata={"templateId": "modern"})

    usage = client.get("/api/admin/analytics?days=7", headers=admin[1]).get_json()
    assert {row["feature_name"] for row in usage["featureUsage"]} == {"templates", "resume_builder"}
    assert usage["popularTemplates"] == [{"templateId": "modern", "usage_count": 1}]
    assert usage["userEngagement"][0]["total_events"] == 3

    activity = client.get("/api/admin/activity?limit=2", headers=admin[1]).get_json()["activities"]
    assert [row["action"] for row in activity] == ["generate_pdf", "access"]
    assert activity[0]["user_email"] == "jane@example.com"

    dau = client.get("/api/admin/metrics/dau", headers=admin[1]).get_json()["dauData"]
    assert dau[0]["active_users"] == 1

    adoption = client.get("/api/admin/metrics/adoption?feature=templates", headers=admin[1]).get_json()
    assert adoption["adoption"] == [{"feature_name": "templates", "adoption_rate": 50.0, "total_users": 1}]
