"""Tests covering CORS and per-IP rate limiting."""

from __future__ import annotations

from conftest import build_app

OTHER_IP = {"REMOTE_ADDR": "10.0.0.2"}


def test_cors_allows_configured_origin(tmp_path):
    app = build_app(tmp_path, CORS_ORIGINS=["https://client.example"])
    client = app.test_client()

    response = client.get("/api/health", headers={"Origin": "https://client.example"})

    assert response.status_code == 200
    assert response.headers.get("Access-Control-Allow-Origin") == "https://client.example"
    assert response.headers.get("X-Request-ID")


def test_cors_ignores_unknown_origin(tmp_path):
    app = build_app(tmp_path, CORS_ORIGINS=["https://client.example"])
    client = app.test_client()

    response = client.get("/api/health", headers={"Origin": "https://evil.example"})

    assert "Access-Control-Allow-Origin" not in response.headers


def test_auth_routes_share_a_tighter_limit(tmp_path):
    app = build_app(tmp_path, AUTH_RATE_LIMIT="2 per minute", API_RATE_LIMIT="50 per minute")
    client = app.test_client()

    assert client.post("/api/auth/login", json={"email": "a@example.com", "password": "x"}).status_code == 401
    assert client.post("/api/auth/resend-verification", json={"email": "a@example.com"}).status_code == 404
    response = client.post("/api/auth/login", json={"email": "a@example.com", "password": "x"})

    assert response.status_code == 429
    payload = response.get_json()
    assert payload["success"] is False
    assert payload["error"] == "Too Many Requests"
    assert payload["detail"] == "Too many requests from this IP, please try again later."
    assert "request_id" in payload

    # Other route groups and other clients are unaffected.
    assert client.get("/api/health").status_code == 200
    other = client.post(
        "/api/auth/login",
        json={"email": "a@example.com", "password": "x"},
        environ_base=OTHER_IP,
    )
    assert other.status_code == 401


def test_api_limit_applies_per_ip(tmp_path):
    app = build_app(tmp_path, API_RATE_LIMIT="3 per minute")
    client = app.test_client()

    for _ in range(3):
        assert client.get("/api/health").status_code == 200
    assert client.get("/api/get-templates").status_code == 429

    assert client.get("/api/health", environ_base=OTHER_IP).status_code == 200
