"""Tests for the Flask application factory."""
from __future__ import annotations

import pytest

from conftest import build_app


def test_health_endpoint_returns_ok(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "ok"}


def test_blueprints_registered(app):
    """Application factory should register every API blueprint."""
    bps = set(app.blueprints.keys())
    assert {"auth", "protected", "admin", "content", "documents"}.issubset(bps)


def test_storage_backend_attached(app):
    storage = app.extensions["storage"]
    assert storage.backend == app.config["STORAGE_BACKEND"]


def test_json_backend_creates_data_files(tmp_path):
    build_app(tmp_path, STORAGE_BACKEND="json")
    assert (tmp_path / "data" / "users.json").read_text() == "[]"
    assert (tmp_path / "data" / "analytics.json").is_file()


def test_unknown_storage_backend_rejected(tmp_path):
    with pytest.raises(ValueError):
        build_app(tmp_path, STORAGE_BACKEND="mongo")


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    payload = response.get_json()
    assert payload["success"] is False
    assert payload["error"] == "Not Found"
    assert payload["request_id"] == response.headers["X-Request-ID"]


def test_request_id_is_echoed(client):
    response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
