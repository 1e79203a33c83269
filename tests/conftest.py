"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402
from services import accounts  # noqa: E402
from storage import get_storage  # noqa: E402

BASE_TEMPLATE = {
    "id": "modern",
    "name": "Modern",
    "description": "Test base template",
    "font_family": "Inter",
    "font_size": 11,
    "primary_color": "#111827",
    "secondary_color": "#6b7280",
    "accent_color": "#2563eb",
    "section_order": ["Work", "Skills", "Education", "Projects"],
    "bullet_style": "circle",
    "spacing": "normal",
    "header_style": "centered",
    "margins": {"top": 40, "bottom": 40, "left": 40, "right": 40},
    "line_height": 1.4,
    "section_spacing": 16,
    "category": "professional",
}


class _BaseTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-key-that-is-long-enough"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = "*"
    AUTH_RATE_LIMIT = "1000 per minute"
    API_RATE_LIMIT = "1000 per minute"
    MAIL_SUPPRESS_SEND = True
    OPENAI_API_KEY = None


def build_app(tmp_path: Path, **overrides) -> Flask:
    """Create an app whose files live under ``tmp_path``."""

    templates_dir = tmp_path / "templates"
    (templates_dir / "base").mkdir(parents=True, exist_ok=True)
    (templates_dir / "base" / "modern.json").write_text(json.dumps(BASE_TEMPLATE))

    class TestConfig(_BaseTestConfig):
        DATA_DIR = str(tmp_path / "data")
        TEMPLATES_DIR = str(templates_dir)

    for key, value in overrides.items():
        setattr(TestConfig, key, value)

    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
    return application


@pytest.fixture(params=["json", "sql"])
def app(request, tmp_path) -> Flask:
    """Create a Flask application instance for each storage backend."""

    application = build_app(tmp_path, STORAGE_BACKEND=request.param)

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


def create_user(
    app: Flask,
    email: str = "jane@example.com",
    password: str = "secret123",
    *,
    name: str = "Jane Doe",
    role: str = "user",
    verified: bool = True,
) -> int:
    """Persist a user through the configured storage and return its id."""

    with app.app_context():
        user = User(email=email, name=name, role=role, email_verified=verified)
        user.set_password(password)
        get_storage().users.add(user)
        return user.id


def auth_headers(app: Flask, user_id: int) -> dict:
    with app.app_context():
        user = get_storage().users.get(user_id)
        token = accounts.issue_access_token(user)
    return {"Authorization": f"Bearer {token}"}


def load_user(app: Flask, user_id: int) -> dict:
    with app.app_context():
        user = get_storage().users.get(user_id)
        return user.to_dict(include_private=True) if user else None


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replies are consumed in order."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture()
def fake_openai(app: Flask):
    """Install a fake OpenAI client on the app and return its completions stub."""

    def install(*replies):
        completions = FakeCompletions(replies or [""])
        app.extensions["openai_client"] = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        return completions

    return install
